from clients import TorrentState

RPC_TIMEOUT = 60

TRANSMISSION_FETCH_ARGS = [
    'id', 'name', 'hashString', 'status', 'error', 'downloadDir', 'totalSize', 'sizeWhenDone',
    'leftUntilDone', 'downloadedEver', 'uploadedEver', 'rateDownload', 'rateUpload', 'addedDate', 'doneDate',
    'trackers']

TRANSMISSION_FILES_ARGS = ['id', 'hashString', 'files', 'priorities', 'wanted']

# 'stopped' is resolved separately, it depends on whether the torrent ever finished
STATUS_MAPPING = {
    'check pending': TorrentState.CHECKING,
    'checking': TorrentState.CHECKING,
    'download pending': TorrentState.DOWNLOADING,
    'downloading': TorrentState.DOWNLOADING,
    'seed pending': TorrentState.SEEDING,
    'seeding': TorrentState.SEEDING,
}

STATUS_STOPPED = 'stopped'

# Value of the error field for a local error, e.g. missing data
ERROR_LOCAL = 3

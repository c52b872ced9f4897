from clients import TorrentState

REQUEST_TIMEOUT = 30

# qBittorrent 5 renamed paused* to stopped*, both are mapped
STATE_MAPPING = {
    'stalledUP': TorrentState.SEEDING,
    'queuedUP': TorrentState.SEEDING,
    'forcedUP': TorrentState.SEEDING,
    'uploading': TorrentState.SEEDING,
    'metaDL': TorrentState.DOWNLOADING,
    'forcedMetaDL': TorrentState.DOWNLOADING,
    'allocating': TorrentState.DOWNLOADING,
    'stalledDL': TorrentState.DOWNLOADING,
    'queuedDL': TorrentState.DOWNLOADING,
    'forcedDL': TorrentState.DOWNLOADING,
    'downloading': TorrentState.DOWNLOADING,
    'pausedUP': TorrentState.COMPLETED,
    'stoppedUP': TorrentState.COMPLETED,
    'pausedDL': TorrentState.PAUSED,
    'stoppedDL': TorrentState.PAUSED,
    'checkingUP': TorrentState.CHECKING,
    'checkingDL': TorrentState.CHECKING,
    'checkingResumeData': TorrentState.CHECKING,
    'error': TorrentState.ERROR,
    'missingFiles': TorrentState.ERROR,
}

FILE_PRIORITY_IGNORED = 0

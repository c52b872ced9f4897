from clients import Torrent, TorrentState, FieldInfo, TorrentContentFile, map_fields
from transmission.params import STATUS_MAPPING, STATUS_STOPPED, ERROR_LOCAL


def convert_status(status, done_date, error):
    # Tracker warnings and errors (1, 2) leave the torrent working, only local errors stop it
    if error == ERROR_LOCAL:
        return TorrentState.ERROR
    if status == STATUS_STOPPED:
        return TorrentState.COMPLETED if done_date and done_date > 0 else TorrentState.PAUSED
    return STATUS_MAPPING.get(status, TorrentState.UNKNOWN)


def _get_state(t_torrent):
    return convert_status(t_torrent.status, t_torrent.doneDate, t_torrent.error)


def _get_first_announce(trackers):
    for tracker in trackers or []:
        if tracker.get('announce'):
            return tracker['announce']
    return ''


def _get_content_path(t_torrent):
    sep = '\\' if '\\' in t_torrent.downloadDir else '/'
    return t_torrent.downloadDir.rstrip(sep) + sep + t_torrent.name


_FIELD_MAPPING = [
    FieldInfo('info_hash', 'hashString'),
    FieldInfo('name', 'name'),
    FieldInfo('state', None, converter=_get_state),
    FieldInfo('low_level_state', 'status'),
    FieldInfo('save_path', 'downloadDir'),
    FieldInfo('content_path', None, converter=_get_content_path),
    FieldInfo('tracker', 'trackers', converter=_get_first_announce),
    FieldInfo('size', 'sizeWhenDone'),
    FieldInfo('size_total', 'totalSize'),
    FieldInfo('size_completed', None, converter=lambda t: t.sizeWhenDone - t.leftUntilDone),
    FieldInfo('downloaded', 'downloadedEver'),
    FieldInfo('uploaded', 'uploadedEver'),
    FieldInfo('download_speed', 'rateDownload'),
    FieldInfo('upload_speed', 'rateUpload'),
    FieldInfo('atime', 'addedDate'),
    FieldInfo('ctime', 'doneDate', converter=lambda d: d if d and d > 0 else -1),
]


def torrent_from_t_torrent(t_torrent):
    """Transmission has no categories nor tags, so those stay empty."""
    return Torrent(**map_fields(_FIELD_MAPPING, t_torrent))


def contents_from_t_files(t_files):
    """t_files is the {index: file_info} dict returned by transmissionrpc's Torrent.files()."""
    contents = []
    for index, file_info in sorted(t_files.items()):
        size = file_info['size']
        completed = file_info['completed']
        contents.append(TorrentContentFile(
            index=index,
            path=file_info['name'],
            size=size,
            progress=completed / size if size else 1.0,
            ignored=not file_info['selected'],
            complete=completed == size,
        ))
    return contents

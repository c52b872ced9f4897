from clients import Torrent, TorrentState, FieldInfo, TorrentContentFile, map_fields
from qbit.params import STATE_MAPPING, FILE_PRIORITY_IGNORED
from utils import split_csv


def convert_state(state):
    return STATE_MAPPING.get(state, TorrentState.UNKNOWN)


def _get_content_path(qb_torrent):
    """qBittorrent reports the file itself as content_path for single file torrents, even inside a folder."""
    content_path = qb_torrent.content_path
    sep = '\\' if '\\' in qb_torrent.save_path else '/'
    prefix = qb_torrent.save_path.rstrip(sep) + sep
    if content_path.startswith(prefix):
        relative = content_path[len(prefix):]
        if sep in relative:
            return prefix + relative.split(sep, 1)[0]
    return content_path


_FIELD_MAPPING = [
    FieldInfo('info_hash', 'hash'),
    FieldInfo('name', 'name'),
    FieldInfo('state', 'state', converter=convert_state),
    FieldInfo('low_level_state', 'state'),
    FieldInfo('category', 'category'),
    FieldInfo('tags', 'tags', converter=split_csv),
    FieldInfo('save_path', 'save_path'),
    FieldInfo('content_path', None, converter=_get_content_path),
    FieldInfo('tracker', 'tracker'),
    FieldInfo('size', 'size'),
    FieldInfo('size_total', 'total_size'),
    FieldInfo('size_completed', 'completed'),
    FieldInfo('downloaded', 'downloaded'),
    FieldInfo('uploaded', 'uploaded'),
    FieldInfo('download_speed', 'dlspeed'),
    FieldInfo('upload_speed', 'upspeed'),
    FieldInfo('atime', 'added_on'),
    FieldInfo('ctime', 'completion_on'),
]


def torrent_from_qb_torrent(qb_torrent):
    return Torrent(**map_fields(_FIELD_MAPPING, qb_torrent))


def contents_from_qb_files(qb_files):
    contents = []
    for qb_file in qb_files:
        contents.append(TorrentContentFile(
            index=qb_file.index,
            path=qb_file.name,
            size=qb_file.size,
            progress=qb_file.progress,
            ignored=qb_file.priority == FILE_PRIORITY_IGNORED,
            complete=qb_file.progress == 1,
        ))
    return contents

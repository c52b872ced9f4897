import io
import logging
from enum import IntEnum

import torf

from clients import TorrentContentFile, PtkeeperException
from ptkeeper_logging import BraceAdapter

logger = BraceAdapter(logging.getLogger(__name__))


class TorrentFileException(PtkeeperException):
    pass


class XseedVerdict(IntEnum):
    # Contents differ
    NO_MATCH = -1
    # Every file is the same but the top level folders are named differently
    ROOT_DIFFERS = -2
    EXACT_MATCH = 0
    # The client torrent has more files than the candidate. Not fully reliable, treat as a hint only.
    SUPERSET_MATCH = 1

    @property
    def is_match(self):
        return self >= 0


class _ContainerFolder:
    """Tracks whether every path seen so far on one side shares the same first path segment."""

    def __init__(self):
        self.enabled = True
        self.name = None

    def observe(self, path):
        if not self.enabled:
            return
        parts = path.split('/', 1)
        if len(parts) == 1:
            self.enabled = False
        elif self.name is None:
            self.name = parts[0]
        elif self.name != parts[0]:
            self.enabled = False


def _strip_first_segment(path):
    return path.split('/', 1)[-1]


def check_xseed_contents(client_contents, torrent_contents):
    """Compare the files of a torrent in the client with the files of a candidate torrent.

    Both lists must be sorted by path and hold objects with path and size attributes. Returns an
    XseedVerdict: whether the candidate can be seeded from the client torrent's data.
    """
    if len(torrent_contents) > len(client_contents) or len(torrent_contents) == 0:
        return XseedVerdict.NO_MATCH

    client_folder = _ContainerFolder()
    torrent_folder = _ContainerFolder()
    for client_file, torrent_file in zip(client_contents, torrent_contents):
        if client_file.size != torrent_file.size:
            logger.debug('Size of {} ({}) does not match {} ({})',
                         torrent_file.path, torrent_file.size, client_file.path, client_file.size)
            return XseedVerdict.NO_MATCH
        client_folder.observe(client_file.path)
        torrent_folder.observe(torrent_file.path)
        if client_file.path == torrent_file.path:
            continue
        if client_folder.enabled and torrent_folder.enabled and \
                _strip_first_segment(client_file.path) == _strip_first_segment(torrent_file.path):
            continue
        logger.debug('File {} does not match {}', torrent_file.path, client_file.path)
        return XseedVerdict.NO_MATCH

    if client_folder.enabled and torrent_folder.enabled and client_folder.name != torrent_folder.name:
        return XseedVerdict.ROOT_DIFFERS
    if len(client_contents) > len(torrent_contents):
        return XseedVerdict.SUPERSET_MATCH
    return XseedVerdict.EXACT_MATCH


def sort_contents(contents):
    return sorted(contents, key=lambda content: content.path)


def read_torrent_contents(torrent_file):
    """File list of a .torrent (a path or its raw bytes), sorted by path.

    Paths are relative to the save path, so multi-file torrents have the torrent name as first segment.
    """
    try:
        if isinstance(torrent_file, (bytes, bytearray)):
            torrent = torf.Torrent.read_stream(io.BytesIO(bytes(torrent_file)), validate=False)
        else:
            torrent = torf.Torrent.read(torrent_file, validate=False)
    except torf.TorfError as exc:
        raise TorrentFileException('Unable to read torrent file: {}'.format(exc)) from exc
    contents = [
        TorrentContentFile(index=index, path='/'.join(file.parts), size=file.size)
        for index, file in enumerate(torrent.files)
    ]
    return sort_contents(contents)

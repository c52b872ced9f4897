import logging
import re
from abc import ABC, abstractmethod
from enum import Enum

from ptkeeper_logging import BraceAdapter
from utils import extract_name_from_announce, split_csv

logger = BraceAdapter(logging.getLogger(__name__))

NONE = 'none'

ACTIVE_SPEED_THRESHOLD = 1024

_INFO_HASH_RE = re.compile(r'^(?:[0-9a-fA-F]{40}|[0-9a-fA-F]{64})$')


class PtkeeperException(Exception):
    pass


class ClientException(PtkeeperException):
    pass


class NotSupportedException(ClientException):
    def __init__(self, client_type, operation):
        super().__init__('{} does not support {}.'.format(client_type, operation))


class TorrentNotFoundException(ClientException):
    def __init__(self, message=None, *args, **kwargs):
        message = message or 'Torrent does not exist.'
        super().__init__(message, *args, **kwargs)


class TorrentAlreadyAddedException(ClientException):
    def __init__(self, message=None, *args, **kwargs):
        message = message or 'Torrent already added.'
        super().__init__(message, *args, **kwargs)


class TorrentState(Enum):
    SEEDING = 'seeding'
    DOWNLOADING = 'downloading'
    COMPLETED = 'completed'
    PAUSED = 'paused'
    CHECKING = 'checking'
    ERROR = 'error'
    UNKNOWN = 'unknown'

    def __str__(self):
        return self.value


DONE_STATES = {TorrentState.COMPLETED, TorrentState.SEEDING}


def is_valid_info_hash(value):
    return bool(_INFO_HASH_RE.match(value))


class FieldInfo:
    def __init__(self, local_name, remote_name, converter=None):
        self.local_name = local_name
        self.remote_name = remote_name
        self.converter = converter


def map_fields(field_mapping, remote):
    """Read the remote object through a list of FieldInfo into a dict of local values."""
    result = {}
    for field_info in field_mapping:
        if field_info.remote_name:
            remote_value = getattr(remote, field_info.remote_name)
        else:
            remote_value = remote
        if field_info.converter:
            remote_value = field_info.converter(remote_value)
        result[field_info.local_name] = remote_value
    return result


class Torrent:
    def __init__(self, info_hash, name='', state=TorrentState.UNKNOWN, low_level_state='', category='',
                 tags=None, save_path='', content_path='', tracker='', size=0, size_total=0, size_completed=0,
                 downloaded=0, uploaded=0, download_speed=0, upload_speed=0, atime=0, ctime=0):
        self.info_hash = info_hash.lower()
        self.name = name
        self.state = state
        # Backend's own state value, kept verbatim for diagnostics
        self.low_level_state = low_level_state
        self.category = category or ''
        self.tags = list(tags or [])
        self.save_path = save_path
        self.content_path = content_path
        self.tracker = tracker or ''
        self.tracker_domain = extract_name_from_announce(self.tracker)
        # Bytes selected for download, always <= size_total
        self.size = size
        self.size_total = size_total
        self.size_completed = size_completed
        self.downloaded = downloaded
        self.uploaded = uploaded
        self.download_speed = download_speed
        self.upload_speed = upload_speed
        # Unix time the torrent was added
        self.atime = atime
        # Unix time the torrent completed, <= 0 while incomplete
        self.ctime = ctime

    def __repr__(self):
        return '<Torrent {} {!r} {}>'.format(self.info_hash, self.name, self.state)

    @property
    def is_complete(self):
        return self.size_completed == self.size

    @property
    def is_full_complete(self):
        return self.size_completed == self.size_total

    @property
    def is_full(self):
        return self.size == self.size_total

    @property
    def is_active(self):
        return self.download_speed >= ACTIVE_SPEED_THRESHOLD or self.upload_speed >= ACTIVE_SPEED_THRESHOLD

    @property
    def site(self):
        return self.get_meta_from_tag('site')

    def has_tag(self, tag):
        tag = tag.lower()
        return any(t.lower() == tag for t in self.tags)

    def has_any_tag(self, tags):
        """tags is a comma-separated list."""
        return any(self.has_tag(tag) for tag in split_csv(tags))

    def match_tag(self, tag):
        if not tag:
            return True
        if tag == NONE:
            return len(self.tags) == 0
        return self.has_any_tag(tag)

    def match_category(self, category):
        if not category:
            return True
        if category == NONE:
            return self.category == ''
        return self.category == category

    def match_filter(self, text):
        return not text or text.lower() in self.name.lower()

    def match_state_filter(self, state_filter):
        if state_filter in ('', '_all'):
            return True
        if state_filter.startswith('_'):
            if state_filter == '_active':
                return self.is_active
            elif state_filter == '_done':
                return self.state in DONE_STATES
            elif state_filter == '_undone':
                return self.state not in DONE_STATES
            state_filter = state_filter[1:]
        return state_filter == self.state.value

    def get_meta_from_tag(self, prefix):
        for tag in self.tags:
            if tag.startswith(prefix + ':'):
                return tag[len(prefix) + 1:]
        return ''

    def to_dict(self):
        return {
            'info_hash': self.info_hash,
            'name': self.name,
            'state': self.state.value,
            'low_level_state': self.low_level_state,
            'category': self.category,
            'tags': list(self.tags),
            'save_path': self.save_path,
            'content_path': self.content_path,
            'tracker': self.tracker,
            'size': self.size,
            'size_total': self.size_total,
            'size_completed': self.size_completed,
            'downloaded': self.downloaded,
            'uploaded': self.uploaded,
            'download_speed': self.download_speed,
            'upload_speed': self.upload_speed,
            'atime': self.atime,
            'ctime': self.ctime,
        }


class TorrentContentFile:
    def __init__(self, index, path, size, progress=0.0, ignored=False, complete=False):
        self.index = index
        self.path = path
        self.size = size
        self.progress = progress
        self.ignored = ignored
        self.complete = complete

    def __repr__(self):
        return '<TorrentContentFile {} {} ({})>'.format(self.index, self.path, self.size)


class TorrentCategory:
    def __init__(self, name, save_path=''):
        self.name = name
        self.save_path = save_path

    def __eq__(self, other):
        return isinstance(other, TorrentCategory) and (self.name, self.save_path) == (other.name, other.save_path)

    def __repr__(self):
        return '<TorrentCategory {} {}>'.format(self.name, self.save_path)


class TorrentOption:
    def __init__(self, name=None, category=None, save_path=None, tags=None, remove_tags=None, pause=False,
                 resume=False, skip_checking=False, download_speed_limit=None, upload_speed_limit=None):
        self.name = name
        self.category = category
        self.save_path = save_path
        self.tags = list(tags or [])
        self.remove_tags = list(remove_tags or [])
        self.pause = pause
        self.resume = resume
        self.skip_checking = skip_checking
        self.download_speed_limit = download_speed_limit
        self.upload_speed_limit = upload_speed_limit


class Client(ABC):
    """Capability contract implemented by every backend adapter.

    Adapters return already-normalized Torrent objects. Bulk methods take a list of info hashes.
    Anything a backend cannot do raises NotSupportedException.
    """

    key = None

    def __init__(self, name, client_config):
        # Name used for display and in the traffic log
        self._name = name
        # ClientConfig this instance was created from
        self._client_config = client_config

    @property
    def name(self):
        return self._name

    @property
    def client_config(self):
        return self._client_config

    @abstractmethod
    def _fetch_torrents(self):
        """All torrents of the backend, as Torrent objects."""

    def get_torrents(self, state_filter='', category='', show_all=True):
        """category "none" selects uncategorized torrents. show_all=False keeps only active torrents."""
        result = []
        for torrent in self._fetch_torrents():
            if not torrent.match_category(category):
                continue
            if not show_all and not torrent.is_active:
                continue
            if not torrent.match_state_filter(state_filter):
                continue
            result.append(torrent)
        return result

    def get_torrent(self, info_hash):
        info_hash = info_hash.lower()
        for torrent in self._fetch_torrents():
            if torrent.info_hash == info_hash:
                return torrent
        raise TorrentNotFoundException('Torrent {} does not exist in {}.'.format(info_hash, self._name))

    @abstractmethod
    def get_torrent_contents(self, info_hash):
        pass

    @abstractmethod
    def add_torrent(self, torrent_file, option):
        pass

    @abstractmethod
    def modify_torrent(self, info_hash, option):
        pass

    @abstractmethod
    def delete_torrents(self, info_hashes, delete_files):
        pass

    @abstractmethod
    def pause_torrents(self, info_hashes):
        pass

    @abstractmethod
    def resume_torrents(self, info_hashes):
        pass

    @abstractmethod
    def recheck_torrents(self, info_hashes):
        pass

    @abstractmethod
    def reannounce_torrents(self, info_hashes):
        pass

    @abstractmethod
    def get_tags(self):
        pass

    @abstractmethod
    def create_tags(self, *tags):
        pass

    @abstractmethod
    def delete_tags(self, *tags):
        pass

    @abstractmethod
    def add_tags_to_torrents(self, info_hashes, tags):
        pass

    @abstractmethod
    def remove_tags_from_torrents(self, info_hashes, tags):
        pass

    @abstractmethod
    def get_categories(self):
        pass

    @abstractmethod
    def make_category(self, category, save_path=''):
        pass

    @abstractmethod
    def delete_categories(self, categories):
        pass

    @abstractmethod
    def set_torrents_category(self, info_hashes, category):
        pass

    def close(self):
        pass


def get_client_types():
    client_types = []

    try:
        from transmission.transmission_client import TransmissionClient
        client_types.append(TransmissionClient)
    except ImportError as exc:
        logger.warning('Unable to import transmission_client: {}.', exc)

    try:
        from qbit.qbittorrent_client import QbittorrentClient
        client_types.append(QbittorrentClient)
    except ImportError as exc:
        logger.warning('Unable to import qbittorrent_client: {}.', exc)

    return {client_type.key: client_type for client_type in client_types}

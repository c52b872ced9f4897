"""Shared fixtures: an in-memory Client and a torrent factory."""
import pytest
import pytz

from clients import Client, Torrent, TorrentState, TorrentNotFoundException, ClientException


def make_hash(n):
    return '{:040x}'.format(n)


def make_torrent(n, **kwargs):
    kwargs.setdefault('name', 'Torrent {}'.format(n))
    kwargs.setdefault('state', TorrentState.SEEDING)
    kwargs.setdefault('size', 1000)
    kwargs.setdefault('size_total', 1000)
    kwargs.setdefault('size_completed', 1000)
    return Torrent(make_hash(n), **kwargs)


class FakeClient(Client):
    """Keeps torrents in a dict and records every backend call."""

    key = 'fake'

    def __init__(self, name='local', torrents=()):
        super().__init__(name, None)
        self.torrents = {torrent.info_hash: torrent for torrent in torrents}
        self.contents = {}
        self.calls = []
        # info hash -> exception raised by any bulk call including it
        self.failures = {}

    def _record(self, method, *args):
        self.calls.append((method,) + args)

    def _check(self, info_hashes):
        for info_hash in info_hashes:
            if info_hash in self.failures:
                raise self.failures[info_hash]

    def _fetch_torrents(self):
        self._record('fetch')
        return list(self.torrents.values())

    def get_torrent(self, info_hash):
        self._record('get_torrent', info_hash)
        try:
            return self.torrents[info_hash.lower()]
        except KeyError:
            raise TorrentNotFoundException('Torrent {} does not exist.'.format(info_hash))

    def get_torrent_contents(self, info_hash):
        return self.contents[info_hash]

    def add_torrent(self, torrent_file, option):
        self._record('add_torrent', torrent_file, option)

    def modify_torrent(self, info_hash, option):
        self._check([info_hash])
        self._record('modify_torrent', info_hash, option)

    def delete_torrents(self, info_hashes, delete_files):
        self._check(info_hashes)
        self._record('delete_torrents', list(info_hashes), delete_files)
        for info_hash in info_hashes:
            self.torrents.pop(info_hash, None)

    def pause_torrents(self, info_hashes):
        self._check(info_hashes)
        self._record('pause_torrents', list(info_hashes))

    def resume_torrents(self, info_hashes):
        self._check(info_hashes)
        self._record('resume_torrents', list(info_hashes))

    def recheck_torrents(self, info_hashes):
        self._record('recheck_torrents', list(info_hashes))

    def reannounce_torrents(self, info_hashes):
        self._record('reannounce_torrents', list(info_hashes))

    def get_tags(self):
        return sorted({tag for torrent in self.torrents.values() for tag in torrent.tags})

    def create_tags(self, *tags):
        self._record('create_tags', tags)

    def delete_tags(self, *tags):
        self._record('delete_tags', tags)

    def add_tags_to_torrents(self, info_hashes, tags):
        self._check(info_hashes)
        self._record('add_tags_to_torrents', list(info_hashes), tags)

    def remove_tags_from_torrents(self, info_hashes, tags):
        self._record('remove_tags_from_torrents', list(info_hashes), tags)

    def get_categories(self):
        return []

    def make_category(self, category, save_path=''):
        self._record('make_category', category, save_path)

    def delete_categories(self, categories):
        self._record('delete_categories', categories)

    def set_torrents_category(self, info_hashes, category):
        self._record('set_torrents_category', list(info_hashes), category)

    def calls_to(self, method):
        return [call for call in self.calls if call[0] == method]


@pytest.fixture
def fake_client():
    return FakeClient(torrents=[
        make_torrent(1, name='Movie.2020.1080p', category='movies', tags=['site:alpha'],
                     upload_speed=4096),
        make_torrent(2, name='Show.S01', category='tv', tags=['site:beta', 'keep'],
                     state=TorrentState.DOWNLOADING, size_completed=100, download_speed=2048),
        make_torrent(3, name='Album.FLAC', state=TorrentState.PAUSED, size_completed=500),
        make_torrent(4, name='Movie.2021.720p', category='movies', state=TorrentState.COMPLETED),
    ])


@pytest.fixture
def failing_error():
    return ClientException('backend exploded')


@pytest.fixture
def tz():
    return pytz.utc

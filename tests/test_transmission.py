from types import SimpleNamespace
from unittest.mock import patch

import pytest
import transmissionrpc

from clients import TorrentState, TorrentOption, ClientException, NotSupportedException, TorrentNotFoundException
from selection import match_state_filter
from transmission.torrent_state import convert_status, torrent_from_t_torrent, contents_from_t_files
from transmission.transmission_client import TransmissionClient

HASH = 'AB' * 20


def make_t_torrent(**kwargs):
    values = dict(
        id=1, name='Some.Release', hashString=HASH, status='seeding', error=0, errorString='', downloadDir='/data/',
        totalSize=1000, sizeWhenDone=800, leftUntilDone=0, downloadedEver=800, uploadedEver=1600,
        rateDownload=0, rateUpload=2048, addedDate=1000, doneDate=2000,
        trackers=[{'announce': 'https://tracker.example.org:443/announce?passkey=x'}],
    )
    values.update(kwargs)
    return SimpleNamespace(**values)


@pytest.mark.parametrize('status,done_date,error,expected', [
    ('seeding', 10, 0, TorrentState.SEEDING),
    ('seed pending', 10, 0, TorrentState.SEEDING),
    ('downloading', 0, 0, TorrentState.DOWNLOADING),
    ('check pending', 0, 0, TorrentState.CHECKING),
    ('stopped', 10, 0, TorrentState.COMPLETED),
    ('stopped', 0, 0, TorrentState.PAUSED),
    ('seeding', 10, 1, TorrentState.SEEDING),
    ('seeding', 10, 2, TorrentState.SEEDING),
    ('stopped', 10, 3, TorrentState.ERROR),
    ('warp speed', 0, 0, TorrentState.UNKNOWN),
])
def test_convert_status(status, done_date, error, expected):
    assert convert_status(status, done_date, error) == expected


def test_torrent_from_t_torrent():
    torrent = torrent_from_t_torrent(make_t_torrent())
    assert torrent.info_hash == HASH.lower()
    assert torrent.state == TorrentState.SEEDING
    assert torrent.low_level_state == 'seeding'
    assert torrent.content_path == '/data/Some.Release'
    assert torrent.tracker_domain == 'tracker.example.org'
    assert (torrent.size, torrent.size_total, torrent.size_completed) == (800, 1000, 800)
    assert torrent.is_complete and not torrent.is_full_complete
    assert torrent.is_active
    assert (torrent.atime, torrent.ctime) == (1000, 2000)
    assert torrent.category == '' and torrent.tags == []


def test_tracker_warning_keeps_seeding_state():
    torrent = torrent_from_t_torrent(make_t_torrent(error=2, errorString='Tracker gave HTTP response code 502'))
    assert torrent.state == TorrentState.SEEDING
    assert match_state_filter(torrent, '_seeding')
    assert match_state_filter(torrent, '_done')


def test_local_error_is_error_state():
    torrent = torrent_from_t_torrent(make_t_torrent(status='stopped', error=3, errorString='No data found!'))
    assert torrent.state == TorrentState.ERROR
    assert torrent.low_level_state == 'stopped'


def test_incomplete_t_torrent():
    torrent = torrent_from_t_torrent(make_t_torrent(status='downloading', leftUntilDone=300, doneDate=0))
    assert torrent.size_completed == 500
    assert torrent.ctime == -1
    assert not torrent.is_complete


def test_contents_from_t_files():
    contents = contents_from_t_files({
        1: {'name': 'Rel/b.mkv', 'size': 10, 'completed': 10, 'selected': False, 'priority': 'normal'},
        0: {'name': 'Rel/a.mkv', 'size': 20, 'completed': 5, 'selected': True, 'priority': 'normal'},
    })
    assert [(c.index, c.path, c.ignored, c.complete) for c in contents] == [
        (0, 'Rel/a.mkv', False, False),
        (1, 'Rel/b.mkv', True, True),
    ]
    assert contents[0].progress == 0.25


@pytest.fixture
def rpc_class():
    with patch('transmission.transmission_client.transmissionrpc.Client') as rpc_class:
        yield rpc_class


@pytest.fixture
def rpc(rpc_class):
    return rpc_class.return_value


@pytest.fixture
def client(rpc):
    config = SimpleNamespace(rpc_host='localhost', rpc_port=9091, rpc_username='', rpc_password='')
    return TransmissionClient('tr', config)


def test_get_torrents(client, rpc):
    rpc.get_torrents.return_value = [make_t_torrent(), make_t_torrent(hashString='cd' * 20, status='stopped',
                                                                       doneDate=0, rateUpload=0)]
    assert [t.state for t in client.get_torrents()] == [TorrentState.SEEDING, TorrentState.PAUSED]
    assert [t.info_hash for t in client.get_torrents(state_filter='_paused')] == ['cd' * 20]
    assert [t.info_hash for t in client.get_torrents(show_all=False)] == [HASH.lower()]


def test_get_torrent_not_found(client, rpc):
    rpc.get_torrent.side_effect = KeyError('Torrent not found in result')
    with pytest.raises(TorrentNotFoundException):
        client.get_torrent(HASH)


def test_rpc_errors_become_client_errors(client, rpc):
    rpc.start_torrent.side_effect = transmissionrpc.TransmissionError('connection refused')
    with pytest.raises(ClientException):
        client.resume_torrents([HASH])


def test_bulk_operations(client, rpc):
    client.pause_torrents([HASH])
    rpc.stop_torrent.assert_called_once_with([HASH])
    client.recheck_torrents([HASH])
    rpc.verify_torrent.assert_called_once_with([HASH])
    client.reannounce_torrents([HASH])
    rpc.reannounce_torrent.assert_called_once_with([HASH])
    client.delete_torrents([HASH], True)
    rpc.remove_torrent.assert_called_once_with([HASH], delete_data=True)


def test_modify_torrent(client, rpc):
    client.modify_torrent(HASH, TorrentOption(save_path='/new', upload_speed_limit=2048, resume=True))
    rpc.move_torrent_data.assert_called_once_with(HASH, '/new')
    rpc.change_torrent.assert_called_once_with(HASH, uploadLimited=True, uploadLimit=2)
    rpc.start_torrent.assert_called_once_with(HASH)


def test_add_torrent(client, rpc):
    rpc.add_torrent.return_value = SimpleNamespace(id=3, name='Orig')
    client.add_torrent(b'd4:infode', TorrentOption(save_path='/dl', pause=True, name='Renamed'))
    rpc.add_torrent.assert_called_once_with('ZDQ6aW5mb2Rl', paused=True, download_dir='/dl')
    rpc.rename_torrent_path.assert_called_once_with(3, 'Orig', 'Renamed')


def test_tags_and_categories_are_not_supported(client):
    assert client.get_tags() == []
    assert client.get_categories() == []
    with pytest.raises(NotSupportedException):
        client.add_tags_to_torrents([HASH], ['keep'])
    with pytest.raises(NotSupportedException):
        client.set_torrents_category([HASH], 'movies')
    with pytest.raises(NotSupportedException):
        client.modify_torrent(HASH, TorrentOption(tags=['keep']))


def test_rpc_client_is_created_once(client, rpc_class, rpc):
    rpc.get_torrents.return_value = []
    client.get_torrents()
    client.get_torrents()
    assert rpc_class.call_count == 1
    assert rpc_class.call_args[1]['address'] == 'localhost'

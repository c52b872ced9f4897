from types import SimpleNamespace
from unittest.mock import patch

import pytest
import qbittorrentapi

from clients import TorrentState, TorrentOption, TorrentCategory, ClientException, TorrentNotFoundException
from qbit.qbittorrent_client import QbittorrentClient
from qbit.torrent_state import convert_state, torrent_from_qb_torrent, contents_from_qb_files

HASH = 'ef' * 20


def make_qb_torrent(**kwargs):
    values = dict(
        hash=HASH, name='Some.Release', state='uploading', category='movies', tags='site:alpha, keep',
        save_path='/data', content_path='/data/Some.Release', tracker='https://t.example.net/announce',
        size=800, total_size=1000, completed=800, downloaded=800, uploaded=100, dlspeed=0, upspeed=10,
        added_on=1000, completion_on=2000,
    )
    values.update(kwargs)
    return SimpleNamespace(**values)


@pytest.mark.parametrize('state,expected', [
    ('stalledUP', TorrentState.SEEDING),
    ('forcedUP', TorrentState.SEEDING),
    ('stalledDL', TorrentState.DOWNLOADING),
    ('metaDL', TorrentState.DOWNLOADING),
    ('pausedUP', TorrentState.COMPLETED),
    ('stoppedUP', TorrentState.COMPLETED),
    ('pausedDL', TorrentState.PAUSED),
    ('stoppedDL', TorrentState.PAUSED),
    ('checkingResumeData', TorrentState.CHECKING),
    ('missingFiles', TorrentState.ERROR),
    ('moving', TorrentState.UNKNOWN),
])
def test_convert_state(state, expected):
    assert convert_state(state) == expected


def test_torrent_from_qb_torrent():
    torrent = torrent_from_qb_torrent(make_qb_torrent())
    assert torrent.info_hash == HASH
    assert torrent.state == TorrentState.SEEDING
    assert torrent.low_level_state == 'uploading'
    assert torrent.tags == ['site:alpha', 'keep']
    assert torrent.site == 'alpha'
    assert torrent.tracker_domain == 't.example.net'
    assert not torrent.is_active
    assert (torrent.size, torrent.size_total, torrent.size_completed) == (800, 1000, 800)
    assert torrent.content_path == '/data/Some.Release'


def test_single_file_in_folder_content_path():
    torrent = torrent_from_qb_torrent(make_qb_torrent(content_path='/data/Folder/file.mkv'))
    assert torrent.content_path == '/data/Folder'


def test_untagged_qb_torrent():
    torrent = torrent_from_qb_torrent(make_qb_torrent(tags='', category=''))
    assert torrent.tags == []
    assert torrent.match_tag('none')
    assert torrent.match_category('none')


def test_contents_from_qb_files():
    contents = contents_from_qb_files([
        SimpleNamespace(index=0, name='Rel/a.mkv', size=10, progress=1, priority=1),
        SimpleNamespace(index=1, name='Rel/b.nfo', size=2, progress=0.5, priority=0),
    ])
    assert [(c.path, c.complete, c.ignored) for c in contents] == [
        ('Rel/a.mkv', True, False),
        ('Rel/b.nfo', False, True),
    ]


@pytest.fixture
def qb_class():
    with patch('qbit.qbittorrent_client.qbittorrentapi.Client') as qb_class:
        yield qb_class


@pytest.fixture
def qb(qb_class):
    return qb_class.return_value


@pytest.fixture
def client(qb):
    config = SimpleNamespace(rpc_host='localhost', rpc_port=8080, rpc_username='admin', rpc_password='secret')
    return QbittorrentClient('qb', config)


def test_logs_in_once(client, qb_class, qb):
    qb.torrents_info.return_value = [make_qb_torrent()]
    client.get_torrents()
    client.get_torrents()
    assert qb_class.call_count == 1
    assert qb_class.call_args[1]['username'] == 'admin'
    qb.auth_log_in.assert_called_once_with()


def test_get_torrents_filters(client, qb):
    qb.torrents_info.return_value = [
        make_qb_torrent(),
        make_qb_torrent(hash='01' * 20, category='', state='pausedDL'),
    ]
    assert [t.info_hash for t in client.get_torrents(category='none')] == ['01' * 20]
    assert [t.info_hash for t in client.get_torrents(state_filter='_done')] == [HASH]


def test_get_torrent(client, qb):
    qb.torrents_info.return_value = []
    with pytest.raises(TorrentNotFoundException):
        client.get_torrent(HASH)
    qb.torrents_info.assert_called_with(torrent_hashes=HASH)


def test_not_found_and_api_errors(client, qb):
    qb.torrents_files.side_effect = qbittorrentapi.NotFound404Error('missing')
    with pytest.raises(TorrentNotFoundException):
        client.get_torrent_contents(HASH)

    qb.torrents_pause.side_effect = qbittorrentapi.APIConnectionError('down')
    with pytest.raises(ClientException):
        client.pause_torrents([HASH])


def test_tags_and_categories(client, qb):
    client.add_tags_to_torrents([HASH], ['keep'])
    qb.torrents_add_tags.assert_called_once_with(tags=['keep'], torrent_hashes=[HASH])
    client.set_torrents_category([HASH], 'tv')
    qb.torrents_set_category.assert_called_once_with(category='tv', torrent_hashes=[HASH])

    qb.torrents_categories.return_value = {'tv': {'name': 'tv', 'savePath': '/tv'}}
    assert client.get_categories() == [TorrentCategory('tv', '/tv')]


def test_make_existing_category_edits_it(client, qb):
    qb.torrents_create_category.side_effect = qbittorrentapi.Conflict409Error('exists')
    client.make_category('tv', '/tv')
    qb.torrents_edit_category.assert_called_once_with(name='tv', save_path='/tv')


def test_modify_torrent(client, qb):
    client.modify_torrent(HASH, TorrentOption(category='', tags=['a'], remove_tags=['b'], pause=True))
    qb.torrents_set_category.assert_called_once_with(category='', torrent_hashes=HASH)
    qb.torrents_add_tags.assert_called_once_with(tags=['a'], torrent_hashes=HASH)
    qb.torrents_remove_tags.assert_called_once_with(tags=['b'], torrent_hashes=HASH)
    qb.torrents_pause.assert_called_once_with(torrent_hashes=HASH)
    qb.torrents_set_location.assert_not_called()


def test_delete_and_close(client, qb):
    client.delete_torrents([HASH], False)
    qb.torrents_delete.assert_called_once_with(delete_files=False, torrent_hashes=[HASH])
    client.close()
    qb.auth_log_out.assert_called_once_with()

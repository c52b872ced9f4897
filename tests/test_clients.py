from types import SimpleNamespace

from clients import FieldInfo, Torrent, TorrentState, get_client_types, is_valid_info_hash, map_fields
from conftest import make_torrent
from utils import chunks, format_bytes, split_csv, unique, extract_name_from_announce, format_day, day_start_timestamp


def test_torrent_completion():
    torrent = make_torrent(1, size=800, size_total=1000, size_completed=800)
    assert torrent.is_complete
    assert not torrent.is_full_complete
    assert not torrent.is_full


def test_torrent_tags_are_case_insensitive():
    torrent = make_torrent(1, tags=['Keep', 'site:alpha'])
    assert torrent.has_tag('keep')
    assert torrent.has_any_tag('foo, KEEP')
    assert not torrent.match_tag('foo')
    assert not torrent.match_tag('none')
    assert torrent.site == 'alpha'
    assert make_torrent(2).site == ''


def test_torrent_info_hash_is_lowercased():
    torrent = Torrent('AB' * 20, state=TorrentState.PAUSED)
    assert torrent.info_hash == 'ab' * 20
    assert torrent.to_dict()['state'] == 'paused'


def test_is_valid_info_hash():
    assert is_valid_info_hash('ab' * 20)
    assert is_valid_info_hash('AB' * 32)
    assert not is_valid_info_hash('xyz')
    assert not is_valid_info_hash('_active')


def test_map_fields():
    remote = SimpleNamespace(hashString='AB', totalSize=10)
    field_mapping = [
        FieldInfo('info_hash', 'hashString', str.lower),
        FieldInfo('size', 'totalSize'),
        FieldInfo('double', None, lambda r: r.totalSize * 2),
    ]
    assert map_fields(field_mapping, remote) == {'info_hash': 'ab', 'size': 10, 'double': 20}


def test_get_client_types():
    assert set(get_client_types()) == {'transmission', 'qbittorrent'}


def test_utils():
    assert list(chunks(range(5), 2)) == [[0, 1], [2, 3], [4]]
    assert split_csv(' a, ,b ') == ['a', 'b']
    assert split_csv('') == []
    assert unique([3, 1, 3, 2, 1]) == [3, 1, 2]
    assert format_bytes(512) == '512B'
    assert format_bytes(1536) == '1.50KiB'
    assert extract_name_from_announce('udp://tracker.example.com:80/announce') == 'tracker.example.com'
    assert extract_name_from_announce('') == ''


def test_day_helpers(tz):
    assert format_day(1710072000, tz) == '2024-03-10'
    assert day_start_timestamp('2024-03-10', tz) == 1710028800

import json
import logging
import os
import threading
from collections import namedtuple

from ptkeeper_logging import BraceAdapter

logger = BraceAdapter(logging.getLogger(__name__))

# A torrent left the client, its traffic counters are final
EVENT_TORRENT_CLOSED = 1


def _int_field(data, key, default=None):
    value = data.get(key, default)
    if isinstance(value, bool) or value is None:
        raise ValueError('{} is not an integer'.format(key))
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError('{} is not an integer'.format(key))
        return int(value)
    if not isinstance(value, int):
        raise ValueError('{} is not an integer'.format(key))
    return value


def _str_field(data, key, default=None):
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ValueError('{} is not a string'.format(key))
    return value


class TorrentStat(namedtuple('TorrentStat', [
        'client', 'site', 'category', 'info_hash', 'name', 'size', 'atime', 'uploaded', 'downloaded', 'msg'])):
    __slots__ = ()

    @classmethod
    def from_torrent(cls, client_name, torrent, msg=''):
        return cls(
            client=client_name,
            site=torrent.site,
            category=torrent.category,
            info_hash=torrent.info_hash,
            name=torrent.name,
            size=torrent.size,
            atime=torrent.atime,
            uploaded=torrent.uploaded,
            downloaded=torrent.downloaded,
            msg=msg,
        )

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError('data is not an object')
        return cls(
            client=_str_field(data, 'client'),
            site=_str_field(data, 'site', ''),
            category=_str_field(data, 'category', ''),
            info_hash=_str_field(data, 'infoHash'),
            name=_str_field(data, 'name', ''),
            size=_int_field(data, 'size', 0),
            atime=_int_field(data, 'atime'),
            uploaded=_int_field(data, 'uploaded', 0),
            downloaded=_int_field(data, 'downloaded', 0),
            msg=_str_field(data, 'msg', ''),
        )

    def to_dict(self):
        return {
            'client': self.client,
            'site': self.site,
            'category': self.category,
            'infoHash': self.info_hash,
            'name': self.name,
            'size': self.size,
            'atime': self.atime,
            'uploaded': self.uploaded,
            'downloaded': self.downloaded,
            'msg': self.msg,
        }


class StatEvent(namedtuple('StatEvent', ['ts', 'event', 'data'])):
    __slots__ = ()

    @classmethod
    def from_json(cls, line):
        """Raises ValueError for anything that is not a complete, well-formed record."""
        record = json.loads(line)
        if not isinstance(record, dict):
            raise ValueError('record is not an object')
        return cls(
            ts=_int_field(record, 'ts'),
            event=_int_field(record, 'event'),
            data=TorrentStat.from_dict(record.get('data')),
        )

    def to_json(self):
        return json.dumps({
            'ts': self.ts,
            'event': self.event,
            'data': self.data.to_dict(),
        }, ensure_ascii=False)


class StatLog:
    """Append-only newline-delimited JSON file of StatEvents.

    The file is opened on first use, once. Failing to open it only disables recording.
    """

    def __init__(self, filename):
        self._filename = filename
        # Binary append handle, None until opened or if opening failed
        self._file = None
        self._open_attempted = False
        # Guards the first open and every append
        self._lock = threading.Lock()

    @property
    def filename(self):
        return self._filename

    @property
    def available(self):
        return self._ensure_open() is not None

    def _open(self):
        logger.debug('Opening stats file {}', self._filename)
        try:
            f = open(self._filename, 'ab+')
            # A crash mid-write can leave a partial last line, keep it from swallowing the next record
            if f.seek(0, os.SEEK_END) > 0:
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b'\n':
                    f.write(b'\n')
                    f.flush()
        except OSError as exc:
            logger.error('Failed to open stats file {}: {}', self._filename, exc)
            return None
        return f

    def _ensure_open(self):
        if not self._open_attempted:
            with self._lock:
                if not self._open_attempted:
                    self._file = self._open()
                    self._open_attempted = True
        return self._file

    def add_torrent_stat(self, ts, event, torrent_stat):
        """Returns False when the event could not be recorded. Never raises on I/O errors."""
        f = self._ensure_open()
        if f is None:
            return False
        payload = (StatEvent(ts, event, torrent_stat).to_json() + '\n').encode('utf-8')
        with self._lock:
            try:
                f.write(payload)
                f.flush()
            except OSError as exc:
                logger.error('Failed to write to stats file {}: {}', self._filename, exc)
                return False
        logger.debug('Recorded event {} for {} in {}', event, torrent_stat.info_hash, self._filename)
        return True

    def iter_lines(self):
        """Every line of the log from the beginning. Nothing if the log is unavailable."""
        if self._ensure_open() is None:
            return
        with open(self._filename, 'r', encoding='utf-8', errors='replace') as f:
            for line in f:
                yield line

    def close(self):
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
            self._open_attempted = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

import time
import urllib.parse
from datetime import datetime, timedelta

import pytz

DAY_FORMAT = '%Y-%m-%d'

_BYTE_UNITS = ['B', 'KiB', 'MiB', 'GiB', 'TiB', 'PiB']


def get_timezone(name):
    """Resolve a tz database name, or None (meaning local time) for an empty name."""
    if not name:
        return None
    return pytz.timezone(name)


def format_day(timestamp, tz=None):
    return datetime.fromtimestamp(timestamp, tz).strftime(DAY_FORMAT)


def day_start_timestamp(day, tz=None):
    midnight = datetime.strptime(day, DAY_FORMAT)
    if tz is None:
        return int(time.mktime(midnight.timetuple()))
    return int(tz.localize(midnight).timestamp())


def next_day_timestamp(timestamp, tz=None):
    """Unix time of the first second of the calendar day following the one containing timestamp."""
    next_day = datetime.fromtimestamp(timestamp, tz).date() + timedelta(days=1)
    return day_start_timestamp(next_day.strftime(DAY_FORMAT), tz)


def chunks(iterable, n):
    chunk = []
    for item in iterable:
        chunk.append(item)
        if len(chunk) >= n:
            yield chunk
            chunk = []
    if len(chunk):
        yield chunk


def split_csv(value):
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def unique(items, key=None):
    """Items without duplicates, keeping the first occurrence of each."""
    seen = set()
    result = []
    for item in items:
        item_key = key(item) if key else item
        if item_key in seen:
            continue
        seen.add(item_key)
        result.append(item)
    return result


def format_bytes(size):
    size = float(size)
    for unit in _BYTE_UNITS:
        if abs(size) < 1024 or unit == _BYTE_UNITS[-1]:
            if unit == 'B':
                return '{}{}'.format(int(size), unit)
            return '{:.2f}{}'.format(size, unit)
        size /= 1024


_ANNOUNCE_TO_NAME_CACHE = {}


def extract_name_from_announce(announce):
    if not announce:
        return ''

    name = _ANNOUNCE_TO_NAME_CACHE.get(announce)
    if name:
        return name

    try:
        parsed_url = urllib.parse.urlparse(announce)
        name = parsed_url.hostname or announce
    except ValueError:
        name = announce

    _ANNOUNCE_TO_NAME_CACHE[announce] = name
    return name

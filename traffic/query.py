import time
from collections import namedtuple
from datetime import datetime, timedelta

from traffic.replay import replay_log, EMPTY_STATISTICS
from utils import DAY_FORMAT, format_bytes

# Days are inclusive, None means unbounded
Timespan = namedtuple('Timespan', ['name', 'start_day', 'end_day'])

TrafficReportRow = namedtuple('TrafficReportRow', ['timespan', 'by_key', 'total'])

TOP_KEYS = 3


def get_timespans(now=None, tz=None):
    now = int(time.time()) if now is None else now
    today = datetime.fromtimestamp(now, tz).date()

    def day(days_ago):
        return (today - timedelta(days=days_ago)).strftime(DAY_FORMAT)

    return [
        Timespan('<all time>', None, None),
        Timespan('last 30d', day(31), day(1)),
        Timespan('last 7d', day(8), day(1)),
        Timespan('yesterday', day(1), day(1)),
        Timespan('today', day(0), day(0)),
    ]


def build_traffic_report(store, client=None, now=None, tz=None, limit=TOP_KEYS):
    """Traffic per timespan, grouped by client, or by site when a client is given.

    Returns the (at most limit) keys shown as columns and one TrafficReportRow per timespan. The total
    of a row also counts keys that are not shown.
    """
    if client is None:
        keys = store.top_clients(limit)
    else:
        keys = store.top_sites(client, limit)

    rows = []
    for timespan in get_timespans(now, tz):
        if client is None:
            sums = store.traffic_by_client(timespan.start_day, timespan.end_day)
        else:
            sums = store.traffic_by_site(client, timespan.start_day, timespan.end_day)
        total = EMPTY_STATISTICS
        for statistics in sums.values():
            total += statistics
        rows.append(TrafficReportRow(
            timespan=timespan,
            by_key={key: sums.get(key, EMPTY_STATISTICS) for key in keys},
            total=total,
        ))
    return keys, rows


def traffic_report(stat_log, client=None, now=None, tz=None, limit=TOP_KEYS):
    """Replays the whole log and reports on it. Nothing is cached between calls."""
    with replay_log(stat_log, tz) as store:
        return build_traffic_report(store, client, now, tz, limit)


def _format_statistics(statistics):
    return '↓{}, ↑{}'.format(format_bytes(statistics.downloaded), format_bytes(statistics.uploaded))


def render_traffic_report(keys, rows, client=None):
    header = '{}\\{}'.format(client, 'sites') if client else 'time\\clients'
    lines = ['{:<15}  '.format(header)
             + ''.join('{:>20}  /  '.format(key + '(↓, ↑)') for key in keys)
             + '{:>20}'.format('<all>')]
    for row in rows:
        lines.append('{:<15}  '.format(row.timespan.name)
                     + ''.join('{:>20}  /  '.format(_format_statistics(row.by_key[key])) for key in keys)
                     + '{:>20}'.format(_format_statistics(row.total)))
    return lines

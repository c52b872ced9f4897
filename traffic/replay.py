"""Rebuilds the per-day traffic aggregate from the stats log.

Nothing is persisted: every replay starts from an empty in-memory database and reads the log from its
first line, so the aggregate can never drift from the log.
"""
import logging
from collections import namedtuple

import peewee

from ptkeeper_logging import BraceAdapter
from traffic.event_log import StatEvent, EVENT_TORRENT_CLOSED
from traffic.models import TorrentTraffic, TRAFFIC_MODELS
from utils import format_day, next_day_timestamp

logger = BraceAdapter(logging.getLogger(__name__))


class Statistics(namedtuple('Statistics', ['downloaded', 'uploaded'])):
    __slots__ = ()

    def __add__(self, other):
        return Statistics(self.downloaded + other.downloaded, self.uploaded + other.uploaded)

    @property
    def total(self):
        return self.downloaded + self.uploaded


EMPTY_STATISTICS = Statistics(0, 0)


class TrafficStore:
    """Transient (client, day, site) aggregate, backed by a private in-memory SQLite database."""

    def __init__(self):
        self._db = peewee.SqliteDatabase(':memory:')
        with self._bound():
            self._db.create_tables(TRAFFIC_MODELS)

    def _bound(self):
        return self._db.bind_ctx(TRAFFIC_MODELS)

    def atomic(self):
        return self._db.atomic()

    def add(self, client, day, site, downloaded, uploaded):
        with self._bound():
            TorrentTraffic.insert(
                client=client,
                day=day,
                site=site,
                downloaded=downloaded,
                uploaded=uploaded,
            ).on_conflict(
                conflict_target=[TorrentTraffic.client, TorrentTraffic.day, TorrentTraffic.site],
                update={
                    TorrentTraffic.downloaded: TorrentTraffic.downloaded + peewee.EXCLUDED.downloaded,
                    TorrentTraffic.uploaded: TorrentTraffic.uploaded + peewee.EXCLUDED.uploaded,
                },
            ).execute()

    def rows(self):
        with self._bound():
            query = TorrentTraffic.select().order_by(TorrentTraffic.client, TorrentTraffic.day, TorrentTraffic.site)
            return [(row.client, row.day, row.site, row.downloaded, row.uploaded) for row in query]

    def get(self, client, day, site):
        with self._bound():
            row = TorrentTraffic.get_or_none(
                TorrentTraffic.client == client,
                TorrentTraffic.day == day,
                TorrentTraffic.site == site,
            )
            if row is None:
                return EMPTY_STATISTICS
            return Statistics(row.downloaded, row.uploaded)

    def _sums(self, group_field, start_day=None, end_day=None, client=None):
        with self._bound():
            query = (TorrentTraffic
                     .select(group_field.alias('key'),
                             peewee.fn.IFNULL(peewee.fn.SUM(TorrentTraffic.downloaded), 0).alias('downloaded'),
                             peewee.fn.IFNULL(peewee.fn.SUM(TorrentTraffic.uploaded), 0).alias('uploaded'))
                     .group_by(group_field))
            if client is not None:
                query = query.where(TorrentTraffic.client == client)
            if start_day:
                query = query.where(TorrentTraffic.day >= start_day)
            if end_day:
                query = query.where(TorrentTraffic.day <= end_day)
            return {row['key']: Statistics(row['downloaded'], row['uploaded']) for row in query.dicts()}

    def traffic_by_client(self, start_day=None, end_day=None):
        return self._sums(TorrentTraffic.client, start_day, end_day)

    def traffic_by_site(self, client, start_day=None, end_day=None):
        return self._sums(TorrentTraffic.site, start_day, end_day, client=client)

    @staticmethod
    def _rank(sums, limit):
        ranked = sorted(
            ((key, statistics) for key, statistics in sums.items() if key),
            key=lambda item: (-item[1].uploaded, -item[1].total, item[0]),
        )
        return [key for key, _ in ranked[:limit]]

    def top_clients(self, limit=3):
        """Clients with the most uploaded (then most total) traffic of all time."""
        return self._rank(self.traffic_by_client(), limit)

    def top_sites(self, client, limit=3):
        return self._rank(self.traffic_by_site(client), limit)

    def close(self):
        if not self._db.is_closed():
            self._db.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def iter_stat_events(lines):
    for line_number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            yield StatEvent.from_json(line)
        except (ValueError, KeyError, TypeError) as exc:
            logger.debug('Skipping malformed stats record on line {}: {}', line_number, exc)


def split_by_day(start, end, tz=None):
    """(day, seconds) for every calendar day the interval [start, end) touches, in order."""
    segments = []
    current = start
    while current < end:
        boundary = min(next_day_timestamp(current, tz), end)
        segments.append((format_day(current, tz), boundary - current))
        current = boundary
    return segments


def apportion(total, segments, elapsed):
    """Split total bytes over the segments at a constant rate.

    Every segment but the last gets its share rounded down and the last one gets whatever is left, so
    the parts always add up to total.
    """
    result = []
    attributed = 0
    for i, (day, seconds) in enumerate(segments):
        if i == len(segments) - 1:
            amount = total - attributed
        else:
            amount = total * seconds // elapsed
        attributed += amount
        result.append((day, amount))
    return result


def replay_events(events, store, tz=None):
    seen = set()
    replayed = 0
    with store.atomic():
        for event in events:
            if event.event != EVENT_TORRENT_CLOSED:
                continue
            data = event.data
            elapsed = event.ts - data.atime
            if elapsed <= 0:
                continue
            key = (data.client, data.info_hash, data.atime)
            if key in seen:
                continue
            seen.add(key)

            segments = split_by_day(data.atime, event.ts, tz)
            downloads = apportion(data.downloaded, segments, elapsed)
            uploads = apportion(data.uploaded, segments, elapsed)
            for (day, downloaded), (_, uploaded) in zip(downloads, uploads):
                store.add(data.client, day, data.site, downloaded, uploaded)
            replayed += 1
    return replayed


def replay_log(stat_log, tz=None):
    """A fresh TrafficStore holding everything in stat_log. tz=None buckets days in local time."""
    store = TrafficStore()
    replayed = replay_events(iter_stat_events(stat_log.iter_lines()), store, tz)
    logger.debug('Replayed {} events from {}', replayed, stat_log.filename)
    return store

import logging
import time
import traceback

from clients import TorrentOption
from error_manager import ErrorManager, Severity
from ptkeeper_logging import BraceAdapter
from selection import select_torrents, resolve_info_hashes
from traffic.event_log import TorrentStat, EVENT_TORRENT_CLOSED
from utils import chunks

logger = BraceAdapter(logging.getLogger(__name__))


class BatchResult:
    def __init__(self, action, total, error_manager):
        self.action = action
        self.total = total
        self.error_manager = error_manager

    @property
    def failed(self):
        return self.error_manager.count(Severity.ERROR)

    @property
    def succeeded(self):
        return self.total - self.failed

    @property
    def ok(self):
        return self.failed == 0

    def __str__(self):
        return '{}: {} torrents, {} succeeded, {} failed'.format(self.action, self.total, self.succeeded, self.failed)


class TorrentOrchestrator:
    """Runs operations over a selection of torrents of one client.

    A failure on one torrent never stops the others; it is recorded and counted in the BatchResult.
    """

    # Info hashes sent per bulk request to the backend
    CHUNK_SIZE = 100

    def __init__(self, client, stat_log=None):
        self.client = client
        # StatLog receiving an event for every deleted torrent, None to not record anything
        self.stat_log = stat_log

    def select(self, category='', tag='', filter='', tokens=()):
        return resolve_info_hashes(self.client, select_torrents(self.client, category, tag, filter, *tokens))

    def _record_failure(self, error_manager, key, action):
        message = '{} failed for {} in {}'.format(action, key, self.client.name)
        logger.exception(message)
        error_manager.add_error(
            severity=Severity.ERROR,
            key=key,
            message=message,
            traceback=traceback.format_exc(),
        )

    def _run_bulk(self, action, fn, info_hashes):
        error_manager = ErrorManager()
        for chunk in chunks(info_hashes, self.CHUNK_SIZE):
            try:
                fn(chunk)
            except Exception:
                for info_hash in chunk:
                    self._record_failure(error_manager, info_hash, action)
        result = BatchResult(action, len(info_hashes), error_manager)
        logger.info('{}', result)
        return result

    def _run_each(self, action, fn, info_hashes):
        error_manager = ErrorManager()
        for info_hash in info_hashes:
            try:
                fn(info_hash)
            except Exception:
                self._record_failure(error_manager, info_hash, action)
        result = BatchResult(action, len(info_hashes), error_manager)
        logger.info('{}', result)
        return result

    def pause(self, info_hashes):
        return self._run_bulk('pause', self.client.pause_torrents, info_hashes)

    def resume(self, info_hashes):
        return self._run_bulk('resume', self.client.resume_torrents, info_hashes)

    def recheck(self, info_hashes):
        return self._run_bulk('recheck', self.client.recheck_torrents, info_hashes)

    def reannounce(self, info_hashes):
        return self._run_bulk('reannounce', self.client.reannounce_torrents, info_hashes)

    def add_tags(self, info_hashes, tags):
        return self._run_bulk('add tags', lambda chunk: self.client.add_tags_to_torrents(chunk, tags), info_hashes)

    def remove_tags(self, info_hashes, tags):
        return self._run_bulk(
            'remove tags', lambda chunk: self.client.remove_tags_from_torrents(chunk, tags), info_hashes)

    def set_category(self, info_hashes, category):
        return self._run_bulk(
            'set category', lambda chunk: self.client.set_torrents_category(chunk, category), info_hashes)

    def modify(self, info_hashes, option):
        return self._run_each('modify', lambda info_hash: self.client.modify_torrent(info_hash, option), info_hashes)

    def set_save_path(self, info_hashes, save_path):
        return self.modify(info_hashes, TorrentOption(save_path=save_path))

    def delete(self, info_hashes, delete_files=True, msg='', now=None):
        """Deletes torrents one by one, recording their final traffic in the stats log."""

        def delete_one(info_hash):
            torrent = self.client.get_torrent(info_hash)
            self.client.delete_torrents([info_hash], delete_files)
            if self.stat_log is not None:
                ts = int(time.time()) if now is None else now
                self.stat_log.add_torrent_stat(ts, EVENT_TORRENT_CLOSED,
                                               TorrentStat.from_torrent(self.client.name, torrent, msg))

        return self._run_each('delete', delete_one, info_hashes)

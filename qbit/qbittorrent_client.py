import logging
from functools import wraps

import qbittorrentapi

from clients import Client, ClientException, TorrentNotFoundException, TorrentAlreadyAddedException, TorrentCategory
from ptkeeper_logging import BraceAdapter
from qbit import params
from qbit.torrent_state import torrent_from_qb_torrent, contents_from_qb_files

logger = BraceAdapter(logging.getLogger(__name__))


def wrap_qbittorrent_errors(fn):
    @wraps(fn)
    def inner(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except qbittorrentapi.NotFound404Error as exc:
            raise TorrentNotFoundException('Torrent does not exist in {}.'.format(self.name)) from exc
        except qbittorrentapi.APIError as exc:
            raise ClientException('qBittorrent {} failed in {}: {}'.format(
                fn.__name__, self.name, exc)) from exc

    return inner


class QbittorrentClient(Client):
    key = 'qbittorrent'

    def __init__(self, name, client_config):
        super().__init__(name, client_config)

        self._host = client_config.rpc_host
        self._port = client_config.rpc_port
        # qbittorrentapi.Client, logged in on first use
        self._client = None

    def _obtain_client(self):
        logger.debug('Logging in to qBittorrent at {}:{}', self._host, self._port)
        client = qbittorrentapi.Client(
            host=self._host,
            port=self._port,
            username=self._client_config.rpc_username or '',
            password=self._client_config.rpc_password or '',
            REQUESTS_ARGS={'timeout': params.REQUEST_TIMEOUT},
        )
        client.auth_log_in()
        self._client = client

    @property
    def _rpc(self):
        if not self._client:
            self._obtain_client()
        return self._client

    @wrap_qbittorrent_errors
    def _fetch_torrents(self):
        logger.debug('Fetching torrents from {}:{}', self._host, self._port)
        return [torrent_from_qb_torrent(qb_torrent) for qb_torrent in self._rpc.torrents_info()]

    @wrap_qbittorrent_errors
    def get_torrent(self, info_hash):
        qb_torrents = self._rpc.torrents_info(torrent_hashes=info_hash)
        if not qb_torrents:
            raise TorrentNotFoundException('Torrent {} does not exist in {}.'.format(info_hash, self.name))
        return torrent_from_qb_torrent(qb_torrents[0])

    @wrap_qbittorrent_errors
    def get_torrent_contents(self, info_hash):
        return contents_from_qb_files(self._rpc.torrents_files(torrent_hash=info_hash))

    @wrap_qbittorrent_errors
    def add_torrent(self, torrent_file, option):
        logger.info('Adding torrent to {}', self.name)
        result = self._rpc.torrents_add(
            torrent_files=torrent_file,
            save_path=option.save_path or None,
            category=option.category or None,
            tags=option.tags or None,
            rename=option.name or None,
            is_paused=option.pause,
            is_skip_checking=option.skip_checking,
            download_limit=option.download_speed_limit,
            upload_limit=option.upload_speed_limit,
        )
        if isinstance(result, str) and result.lower().startswith('fails'):
            raise TorrentAlreadyAddedException(
                'qBittorrent refused the torrent, it is already in {} or invalid.'.format(self.name))

    @wrap_qbittorrent_errors
    def modify_torrent(self, info_hash, option):
        if option.name:
            self._rpc.torrents_rename(torrent_hash=info_hash, new_torrent_name=option.name)
        if option.category is not None:
            self._rpc.torrents_set_category(category=option.category, torrent_hashes=info_hash)
        if option.save_path:
            self._rpc.torrents_set_location(location=option.save_path, torrent_hashes=info_hash)
        if option.tags:
            self._rpc.torrents_add_tags(tags=option.tags, torrent_hashes=info_hash)
        if option.remove_tags:
            self._rpc.torrents_remove_tags(tags=option.remove_tags, torrent_hashes=info_hash)
        if option.download_speed_limit is not None:
            self._rpc.torrents_set_download_limit(limit=option.download_speed_limit, torrent_hashes=info_hash)
        if option.upload_speed_limit is not None:
            self._rpc.torrents_set_upload_limit(limit=option.upload_speed_limit, torrent_hashes=info_hash)
        if option.pause:
            self._rpc.torrents_pause(torrent_hashes=info_hash)
        elif option.resume:
            self._rpc.torrents_resume(torrent_hashes=info_hash)

    @wrap_qbittorrent_errors
    def delete_torrents(self, info_hashes, delete_files):
        logger.info('Deleting {} torrents from {}', len(info_hashes), self.name)
        self._rpc.torrents_delete(delete_files=delete_files, torrent_hashes=info_hashes)

    @wrap_qbittorrent_errors
    def pause_torrents(self, info_hashes):
        self._rpc.torrents_pause(torrent_hashes=info_hashes)

    @wrap_qbittorrent_errors
    def resume_torrents(self, info_hashes):
        self._rpc.torrents_resume(torrent_hashes=info_hashes)

    @wrap_qbittorrent_errors
    def recheck_torrents(self, info_hashes):
        self._rpc.torrents_recheck(torrent_hashes=info_hashes)

    @wrap_qbittorrent_errors
    def reannounce_torrents(self, info_hashes):
        self._rpc.torrents_reannounce(torrent_hashes=info_hashes)

    @wrap_qbittorrent_errors
    def get_tags(self):
        return list(self._rpc.torrents_tags())

    @wrap_qbittorrent_errors
    def create_tags(self, *tags):
        self._rpc.torrents_create_tags(tags=list(tags))

    @wrap_qbittorrent_errors
    def delete_tags(self, *tags):
        self._rpc.torrents_delete_tags(tags=list(tags))

    @wrap_qbittorrent_errors
    def add_tags_to_torrents(self, info_hashes, tags):
        self._rpc.torrents_add_tags(tags=tags, torrent_hashes=info_hashes)

    @wrap_qbittorrent_errors
    def remove_tags_from_torrents(self, info_hashes, tags):
        self._rpc.torrents_remove_tags(tags=tags, torrent_hashes=info_hashes)

    @wrap_qbittorrent_errors
    def get_categories(self):
        return [TorrentCategory(name, category.get('savePath', ''))
                for name, category in self._rpc.torrents_categories().items()]

    @wrap_qbittorrent_errors
    def make_category(self, category, save_path=''):
        try:
            self._rpc.torrents_create_category(name=category, save_path=save_path)
        except qbittorrentapi.Conflict409Error:
            self._rpc.torrents_edit_category(name=category, save_path=save_path)

    @wrap_qbittorrent_errors
    def delete_categories(self, categories):
        self._rpc.torrents_remove_categories(categories=categories)

    @wrap_qbittorrent_errors
    def set_torrents_category(self, info_hashes, category):
        self._rpc.torrents_set_category(category=category, torrent_hashes=info_hashes)

    def close(self):
        if self._client:
            try:
                self._client.auth_log_out()
            except qbittorrentapi.APIConnectionError as exc:
                logger.debug('Error logging out of {}: {}', self.name, exc)
            self._client = None

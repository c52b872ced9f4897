import base64
import logging
from functools import wraps

import transmissionrpc

from clients import Client, ClientException, NotSupportedException, TorrentNotFoundException
from ptkeeper_logging import BraceAdapter
from transmission import params
from transmission.torrent_state import torrent_from_t_torrent, contents_from_t_files

logger = BraceAdapter(logging.getLogger(__name__))


def wrap_transmission_errors(fn):
    @wraps(fn)
    def inner(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except transmissionrpc.TransmissionError as exc:
            raise ClientException('Transmission {} failed in {}: {}'.format(
                fn.__name__, self.name, exc)) from exc

    return inner


class TransmissionClient(Client):
    key = 'transmission'

    def __init__(self, name, client_config):
        super().__init__(name, client_config)

        self._host = client_config.rpc_host
        self._port = client_config.rpc_port
        # transmissionrpc.Client, created on first use
        self._client = None

    def _obtain_client(self):
        logger.debug('Trying to obtain client for {}:{}', self._host, self._port)
        self._client = transmissionrpc.Client(
            address=self._host,
            port=self._port,
            user=self._client_config.rpc_username or None,
            password=self._client_config.rpc_password or None,
            timeout=params.RPC_TIMEOUT,
        )
        logger.debug('Obtained client for {}:{}', self._host, self._port)

    @property
    def _rpc(self):
        if not self._client:
            self._obtain_client()
        return self._client

    @wrap_transmission_errors
    def _fetch_torrents(self):
        logger.debug('Fetching torrents from {}:{}', self._host, self._port)
        t_torrents = self._rpc.get_torrents(arguments=params.TRANSMISSION_FETCH_ARGS)
        return [torrent_from_t_torrent(t_torrent) for t_torrent in t_torrents]

    @wrap_transmission_errors
    def get_torrent(self, info_hash):
        try:
            t_torrent = self._rpc.get_torrent(info_hash, arguments=params.TRANSMISSION_FETCH_ARGS)
        except KeyError:
            raise TorrentNotFoundException('Torrent {} does not exist in {}.'.format(info_hash, self.name))
        return torrent_from_t_torrent(t_torrent)

    @wrap_transmission_errors
    def get_torrent_contents(self, info_hash):
        try:
            t_torrent = self._rpc.get_torrent(info_hash, arguments=params.TRANSMISSION_FILES_ARGS)
        except KeyError:
            raise TorrentNotFoundException('Torrent {} does not exist in {}.'.format(info_hash, self.name))
        return contents_from_t_files(t_torrent.files())

    @wrap_transmission_errors
    def add_torrent(self, torrent_file, option):
        if option.category or option.tags:
            raise NotSupportedException(self.key, 'categories and tags')
        logger.info('Adding torrent to {}', self.name)
        kwargs = {'paused': option.pause}
        if option.save_path:
            kwargs['download_dir'] = option.save_path
        t_torrent = self._rpc.add_torrent(base64.b64encode(torrent_file).decode(), **kwargs)
        if option.name:
            self._rpc.rename_torrent_path(t_torrent.id, t_torrent.name, option.name)

    @wrap_transmission_errors
    def modify_torrent(self, info_hash, option):
        if option.category or option.tags or option.remove_tags:
            raise NotSupportedException(self.key, 'categories and tags')
        if option.name:
            torrent = self.get_torrent(info_hash)
            self._rpc.rename_torrent_path(info_hash, torrent.name, option.name)
        if option.save_path:
            self._rpc.move_torrent_data(info_hash, option.save_path)
        limits = {}
        if option.download_speed_limit is not None:
            limits['downloadLimited'] = option.download_speed_limit > 0
            limits['downloadLimit'] = max(option.download_speed_limit // 1024, 0)
        if option.upload_speed_limit is not None:
            limits['uploadLimited'] = option.upload_speed_limit > 0
            limits['uploadLimit'] = max(option.upload_speed_limit // 1024, 0)
        if limits:
            self._rpc.change_torrent(info_hash, **limits)
        if option.pause:
            self._rpc.stop_torrent(info_hash)
        elif option.resume:
            self._rpc.start_torrent(info_hash)

    @wrap_transmission_errors
    def delete_torrents(self, info_hashes, delete_files):
        logger.info('Deleting {} torrents from {}', len(info_hashes), self.name)
        self._rpc.remove_torrent(info_hashes, delete_data=delete_files)

    @wrap_transmission_errors
    def pause_torrents(self, info_hashes):
        self._rpc.stop_torrent(info_hashes)

    @wrap_transmission_errors
    def resume_torrents(self, info_hashes):
        self._rpc.start_torrent(info_hashes)

    @wrap_transmission_errors
    def recheck_torrents(self, info_hashes):
        self._rpc.verify_torrent(info_hashes)

    @wrap_transmission_errors
    def reannounce_torrents(self, info_hashes):
        self._rpc.reannounce_torrent(info_hashes)

    def get_tags(self):
        return []

    def create_tags(self, *tags):
        raise NotSupportedException(self.key, 'tags')

    def delete_tags(self, *tags):
        raise NotSupportedException(self.key, 'tags')

    def add_tags_to_torrents(self, info_hashes, tags):
        raise NotSupportedException(self.key, 'tags')

    def remove_tags_from_torrents(self, info_hashes, tags):
        raise NotSupportedException(self.key, 'tags')

    def get_categories(self):
        return []

    def make_category(self, category, save_path=''):
        raise NotSupportedException(self.key, 'categories')

    def delete_categories(self, categories):
        raise NotSupportedException(self.key, 'categories')

    def set_torrents_category(self, info_hashes, category):
        raise NotSupportedException(self.key, 'categories')

    def close(self):
        self._client = None

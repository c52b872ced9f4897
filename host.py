import logging
import os

import pytz

from clients import get_client_types, PtkeeperException
from migrations import apply_migrations
from models import DB, Config, ClientConfig, MODELS, MIGRATIONS, STATS_FILENAME
from ptkeeper_logging import BraceAdapter
from traffic.event_log import StatLog
from utils import get_timezone

logger = BraceAdapter(logging.getLogger(__name__))


class ConfigurationException(PtkeeperException):
    pass


class PtkeeperHost:
    """Owns the state directory: the config database, client instances and the stats log."""

    def __init__(self, state_path):
        self.state_path = state_path
        self.db_path = os.path.join(state_path, 'db.sqlite3')
        self.config = None

        # Registry of client_type: Client subclass
        self._client_types = None
        # Client instances created during this run, by name
        self._clients = {}
        self._stat_log = None

    def _init_db(self):
        apply_migrations(DB, MODELS, MIGRATIONS)

    def open(self):
        logger.debug('Opening state at {}', self.state_path)
        os.makedirs(self.state_path, exist_ok=True)
        DB.init(self.db_path)
        DB.connect(reuse_if_open=True)
        self._init_db()

        self.config = Config.select().first()
        if not self.config:
            self.config = Config.create()
        return self

    def close(self):
        for name, client in self._clients.items():
            logger.debug('Closing client {}', name)
            client.close()
        self._clients.clear()
        if self._stat_log is not None:
            self._stat_log.close()
            self._stat_log = None
        if not DB.is_closed():
            DB.close()

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def client_types(self):
        if self._client_types is None:
            self._client_types = get_client_types()
        return self._client_types

    @property
    def timezone(self):
        return get_timezone(self.config.timezone)

    @property
    def stats_filename(self):
        return self.config.stats_filename or os.path.join(self.state_path, STATS_FILENAME)

    def configure(self, **values):
        values = {key: value for key, value in values.items() if value is not None}
        if values.get('timezone'):
            # Fail now rather than on the first stats query
            try:
                get_timezone(values['timezone'])
            except pytz.UnknownTimeZoneError:
                raise ConfigurationException('Unknown timezone {}.'.format(values['timezone']))
        with DB.atomic():
            self.config.update_from_dict(values)
            self.config.save()
        logger.info('Saved configuration.')
        return self.config

    def add_client(self, name, client_type, rpc_host, rpc_port, rpc_username=None, rpc_password=None):
        if client_type not in self.client_types:
            raise ConfigurationException('Unsupported client type {}. Available: {}.'.format(
                client_type, ', '.join(sorted(self.client_types))))
        if ClientConfig.select().where(ClientConfig.name == name).exists():
            raise ConfigurationException('Client {} already exists.'.format(name))
        with DB.atomic():
            client_config = ClientConfig.create_new(
                name=name,
                client_type=client_type,
                rpc_host=rpc_host,
                rpc_port=rpc_port,
                rpc_username=rpc_username,
                rpc_password=rpc_password,
            )
        logger.info('Added {} client {}.', client_type, name)
        return client_config

    def remove_client(self, name):
        deleted = ClientConfig.delete().where(ClientConfig.name == name).execute()
        if not deleted:
            raise ConfigurationException('Client {} does not exist.'.format(name))
        client = self._clients.pop(name, None)
        if client:
            client.close()

    def get_client_configs(self):
        return list(ClientConfig.select().order_by(ClientConfig.name))

    def get_client(self, name):
        if name in self._clients:
            return self._clients[name]
        client_config = ClientConfig.get_or_none(ClientConfig.name == name)
        if client_config is None:
            raise ConfigurationException('Client {} does not exist.'.format(name))
        client_class = self.client_types.get(client_config.client_type)
        if client_class is None:
            raise ConfigurationException('Unsupported client type {} for client {}.'.format(
                client_config.client_type, name))
        client = client_class(name, client_config)
        self._clients[name] = client
        return client

    def get_stat_log(self):
        """The StatLog to record into, None while statistics are disabled."""
        if not self.config.stats_enabled:
            return None
        if self._stat_log is None:
            self._stat_log = StatLog(self.stats_filename)
        return self._stat_log

import peewee
from playhouse.shortcuts import model_to_dict, update_model_from_dict

DB = peewee.SqliteDatabase(None)

STATS_FILENAME = 'ptkeeper_stats.txt'


class Config(peewee.Model):
    stats_enabled = peewee.BooleanField(default=False)
    # Absolute path of the stats log, None for STATS_FILENAME in the state directory
    stats_filename = peewee.TextField(null=True)
    # tz database name used to bucket traffic into days, None for local time
    timezone = peewee.TextField(null=True)
    delete_files_on_remove = peewee.BooleanField(default=True)

    def to_dict(self):
        return model_to_dict(self, recurse=False, exclude=(Config.id,))

    def update_from_dict(self, data):
        update_model_from_dict(self, data)

    class Meta:
        database = DB


class ClientConfig(peewee.Model):
    name = peewee.CharField(max_length=64, unique=True)
    client_type = peewee.CharField(max_length=32)
    rpc_host = peewee.TextField()
    rpc_port = peewee.IntegerField()
    rpc_username = peewee.TextField(null=True)
    rpc_password = peewee.TextField(null=True)

    def to_dict(self):
        return model_to_dict(self, recurse=False, exclude=(ClientConfig.id, ClientConfig.rpc_password))

    @classmethod
    def create_new(cls, name, client_type, rpc_host, rpc_port, rpc_username=None, rpc_password=None):
        return cls.create(
            name=name,
            client_type=client_type,
            rpc_host=rpc_host,
            rpc_port=rpc_port,
            rpc_username=rpc_username,
            rpc_password=rpc_password,
        )

    class Meta:
        database = DB


class Migration(peewee.Model):
    name = peewee.CharField(max_length=256)

    class Meta:
        database = DB


MODELS = [
    Config,
    ClientConfig,
    Migration,
]


MIGRATIONS = [
    ('0001_initial', lambda migrator: None),
]

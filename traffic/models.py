import peewee


class TorrentTraffic(peewee.Model):
    """Bytes attributed to one (client, day, site). Always derived from the stats log."""
    client = peewee.TextField()
    day = peewee.CharField(max_length=10)
    site = peewee.TextField()
    downloaded = peewee.BigIntegerField(default=0)
    uploaded = peewee.BigIntegerField(default=0)

    class Meta:
        primary_key = peewee.CompositeKey('client', 'day', 'site')


TRAFFIC_MODELS = [
    TorrentTraffic,
]

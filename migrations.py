import logging

from playhouse import migrate

from models import Migration
from ptkeeper_logging import BraceAdapter

logger = BraceAdapter(logging.getLogger(__name__))


def _get_applied_migrations():
    return {migration.name for migration in Migration.select(Migration.name)}


def _record_all(migrations):
    Migration.insert_many([{'name': name} for name, _ in migrations]).execute()


def _run_pending(db, migrations, applied_migrations):
    migrator = migrate.SqliteMigrator(db)
    for migration_name, migration_fn in migrations:
        if migration_name in applied_migrations:
            continue
        logger.info('Running migration {}', migration_name)
        with db.atomic():
            migration_fn(migrator)
            Migration.create(name=migration_name)


def apply_migrations(db, models, migrations):
    """Creates missing tables, then runs every migration not recorded yet.

    A state directory created from scratch already has the latest schema, so its migrations are only recorded.
    """
    db.create_tables(models)
    applied_migrations = _get_applied_migrations()
    if not applied_migrations:
        logger.info('New state database, recording {} migrations.', len(migrations))
        with db.atomic():
            _record_all(migrations)
    else:
        unknown = applied_migrations - {name for name, _ in migrations}
        if unknown:
            logger.warning('State database has migrations unknown to this version: {}', ', '.join(sorted(unknown)))
        _run_pending(db, migrations, applied_migrations)
    return _get_applied_migrations()

"""
Migrations for the tables seedsync owns.

seedsync keeps its own small migration history, separate from the
application's, so the tracking table can evolve without touching user
schemas.
"""

import logging
from typing import Callable, List, Tuple

import sqlalchemy as sa
from sqlalchemy.engine import Connection

from seedsync.db.executor import Executor
from seedsync.tracking.models import TRACKING_TABLE_NAME, StringList, seed_entries
from seedsync.tracking.tracker import utcnow

logger = logging.getLogger(__name__)

MIGRATION_TABLE_NAME = "seedsync_migration"

migration_history = sa.Table(
    MIGRATION_TABLE_NAME,
    sa.MetaData(),
    sa.Column("name", sa.Text, primary_key=True),
    sa.Column("applied_at", sa.DateTime, nullable=False),
)


def _create_seed_entry_table(conn: Connection) -> None:
    seed_entries.create(conn, checkfirst=True)


def _add_created_id_types(conn: Connection) -> None:
    columns = {column["name"] for column in sa.inspect(conn).get_columns(TRACKING_TABLE_NAME)}
    if "created_id_types" in columns:
        return

    table = conn.dialect.identifier_preparer.quote(TRACKING_TABLE_NAME)
    column_type = conn.dialect.type_compiler_instance.process(StringList())
    conn.execute(sa.text(f"ALTER TABLE {table} ADD COLUMN created_id_types {column_type}"))


Migration = Tuple[str, Callable[[Connection], None]]

# Applied in order, each exactly once
MIGRATIONS: List[Migration] = [
    ("20240301120000_create_seed_entry", _create_seed_entry_table),
    ("20240415090000_add_created_id_types", _add_created_id_types),
]


async def setup_database(executor: Executor) -> List[str]:
    """
    Bring seedsync's own tables up to date.

    Returns:
        Names of the migrations that were applied by this call
    """
    applied: List[str] = []

    async with executor.transaction() as conn:
        await conn.run_sync(lambda sync_conn: migration_history.create(sync_conn, checkfirst=True))

        result = await conn.execute(sa.select(migration_history.c.name))
        already_applied = set(result.scalars().all())

        for name, migrate in MIGRATIONS:
            if name in already_applied:
                continue

            logger.info(f"Applying seedsync migration {name}")
            await conn.run_sync(migrate)
            await conn.execute(
                sa.insert(migration_history).values(name=name, applied_at=utcnow())
            )
            applied.append(name)

    if not applied:
        logger.debug("seedsync tables are up to date")

    return applied

"""
Shared fixtures: a temporary SQLite database with the tables seeds write to.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List

import pytest
import sqlalchemy as sa
from sqlalchemy import event

from seedsync.db.executor import Executor
from seedsync.tracking.migrations import setup_database

fixture_metadata = sa.MetaData()

sa.Table(
    "table_a",
    fixture_metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("foo_bar", sa.Text),
)
sa.Table(
    "table_b",
    fixture_metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("table_a_ref", sa.Integer, sa.ForeignKey("table_a.id")),
)
sa.Table(
    "table_c",
    fixture_metadata,
    sa.Column("guid", sa.String(36), primary_key=True),
    sa.Column("foo_bar", sa.Text),
)
sa.Table(
    "table_d",
    fixture_metadata,
    sa.Column("id1", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("id2", sa.Integer, nullable=False),
    sa.UniqueConstraint("id1", "id2"),
)
sa.Table(
    "table_e",
    fixture_metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("table_d_ref_id1", sa.Integer),
    sa.Column("table_d_ref_id2", sa.Integer),
)
sa.Table(
    "table_f",
    fixture_metadata,
    sa.Column("non_standard_id", sa.Integer, primary_key=True, autoincrement=True),
)
sa.Table(
    "table_g",
    fixture_metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column(
        "table_f_ref",
        sa.Integer,
        sa.ForeignKey("table_f.non_standard_id"),
        nullable=False,
    ),
)
sa.Table(
    "table_h",
    fixture_metadata,
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("foo_bar", sa.Text),
)
sa.Table(
    "table_i",
    fixture_metadata,
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("table_h_ref", sa.String(36), sa.ForeignKey("table_h.id")),
    sa.Column("foo_bar", sa.Text),
)


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SeedDatabase:
    """A throwaway SQLite database; every run gets a fresh event loop and engine."""

    def __init__(self, url: str):
        self.url = url

    def executor(self) -> Executor:
        executor = Executor.from_url(self.url)
        event.listen(executor.engine.sync_engine, "connect", _enable_foreign_keys)
        return executor

    def run(self, scenario: Callable[[Executor], Awaitable[Any]]) -> Any:
        async def main():
            executor = self.executor()
            try:
                return await scenario(executor)
            finally:
                await executor.dispose()

        return asyncio.run(main())

    def rows(self, table_name: str) -> List[Dict[str, Any]]:
        """Raw rows of a table, in insertion order."""

        async def fetch(executor: Executor):
            rows = await executor.fetch_all(sa.text(f"SELECT * FROM {table_name} ORDER BY rowid"))
            return [dict(row) for row in rows]

        return self.run(fetch)

    def execute(self, sql: str) -> None:
        async def execute(executor: Executor):
            async with executor.transaction() as conn:
                await conn.execute(sa.text(sql))

        self.run(execute)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'seeds.db'}"


@pytest.fixture
def db(database_url) -> SeedDatabase:
    """A database with the fixture tables and the tracking table created."""
    database = SeedDatabase(database_url)

    async def create(executor: Executor):
        async with executor.transaction() as conn:
            await conn.run_sync(fixture_metadata.create_all)
        await setup_database(executor)

    database.run(create)
    return database


@pytest.fixture
def empty_db(database_url) -> SeedDatabase:
    """A database without any tables."""
    return SeedDatabase(database_url)

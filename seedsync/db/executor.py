"""
Relational executor used by the seeding engine.

The executor wraps an SQLAlchemy :class:`~sqlalchemy.ext.asyncio.AsyncEngine`
and hides the differences between backends (RETURNING support, last insert
id lookups, single-writer databases) behind a capability descriptor.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.sql import Executable
from sqlalchemy.sql.expression import TableClause

from seedsync.db.capabilities import BackendCapabilities

logger = logging.getLogger(__name__)


def target_table(
    table_name: str,
    columns: Iterable[str],
    schema_name: Optional[str] = None,
    values: Optional[Mapping[str, Any]] = None,
) -> TableClause:
    """
    Build a lightweight table clause for a table seedsync has no model for.

    Columns holding mappings or lists are typed as JSON so they serialize
    the same way on every backend.
    """
    values = values or {}
    clause_columns = []
    for name in dict.fromkeys(columns):
        type_ = sa.JSON if isinstance(values.get(name), (dict, list)) else None
        clause_columns.append(sa.column(name, type_))

    return sa.table(table_name, *clause_columns, schema=schema_name)


def key_clause(table: TableClause, key_columns: Sequence[str], key_values: Sequence[Any]):
    """Build a WHERE clause matching every primary key column."""
    return sa.and_(
        *(table.c[name] == value for name, value in zip(key_columns, key_values))
    )


class Executor:
    """
    Runs statements for the seeding engine.

    Backends that do not support concurrent writers (SQLite) get every
    connection checkout serialized behind a lock.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        capabilities: Optional[BackendCapabilities] = None,
    ):
        self.engine = engine
        self.capabilities = capabilities or BackendCapabilities.for_dialect(engine.dialect)
        self._lock: Optional[asyncio.Lock] = (
            None if self.capabilities.concurrent_writes else asyncio.Lock()
        )

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False, **engine_options: Any) -> "Executor":
        """Create an executor (and its engine) from a database URL."""
        engine = create_async_engine(database_url, echo=echo, **engine_options)
        logger.debug(f"Created engine for {engine.url.render_as_string(hide_password=True)}")
        return cls(engine)

    @asynccontextmanager
    async def _serialized(self) -> AsyncIterator[None]:
        if self._lock is None:
            yield
            return

        async with self._lock:
            yield

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """Open a connection for reads."""
        async with self._serialized():
            async with self.engine.connect() as conn:
                yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Open a connection inside a transaction, committed on success."""
        async with self._serialized():
            async with self.engine.begin() as conn:
                yield conn

    async def fetch_all(self, statement: Executable) -> List[RowMapping]:
        async with self.connect() as conn:
            result = await conn.execute(statement)
            return list(result.mappings().all())

    async def fetch_one(self, statement: Executable) -> Optional[RowMapping]:
        async with self.connect() as conn:
            result = await conn.execute(statement)
            return result.mappings().first()

    def describe(self, statement: Executable) -> str:
        """Render a statement and its parameters for logging."""
        compiled = statement.compile(dialect=self.engine.dialect)
        if compiled.params:
            return f"{compiled} {compiled.params}"
        return str(compiled)

    async def execute_mutation(
        self,
        conn: AsyncConnection,
        statement: Executable,
        dry_run: bool = False,
    ) -> Optional[int]:
        """
        Execute an INSERT / UPDATE / DELETE.

        Returns the number of affected rows, or None in a dry run, where the
        statement is only logged.
        """
        if dry_run:
            logger.info(f"dry-run: {self.describe(statement)}")
            return None

        result = await conn.execute(statement)
        return result.rowcount

    async def insert_returning_keys(
        self,
        conn: AsyncConnection,
        table_name: str,
        values: Dict[str, Any],
        key_columns: Sequence[str],
        schema_name: Optional[str] = None,
        dry_run: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """
        Insert one row and return its primary key column values.

        Uses RETURNING where the backend supports it, otherwise looks the row
        back up from the last insert id. Returns None when no row came back.
        """
        table = target_table(table_name, [*values, *key_columns], schema_name, values)

        statement = sa.insert(table)
        if values:
            statement = statement.values(values)
        if self.capabilities.returning:
            statement = statement.returning(*(table.c[name] for name in key_columns))

        if dry_run:
            logger.info(f"dry-run: {self.describe(statement)}")
            return None

        result = await conn.execute(statement)

        if self.capabilities.returning:
            row = result.mappings().first()
            return dict(row) if row else None

        supplied = {name: values.get(name) for name in key_columns}
        if not self.capabilities.rowid_column and all(
            value is not None for value in supplied.values()
        ):
            # the last insert id only covers generated keys
            return supplied

        if not self.capabilities.last_insert_id_sql:
            return None

        last_id = (await conn.execute(sa.text(self.capabilities.last_insert_id_sql))).scalar()
        if not last_id:
            return None

        if self.capabilities.rowid_column:
            lookup = sa.literal_column(self.capabilities.rowid_column)
        else:
            lookup = table.c[key_columns[0]]

        lookup_query = (
            sa.select(*(table.c[name] for name in key_columns))
            .select_from(table)
            .where(lookup == last_id)
        )
        row = (await conn.execute(lookup_query)).mappings().first()
        return dict(row) if row else None

    async def dispose(self) -> None:
        await self.engine.dispose()

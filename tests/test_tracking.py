"""
Tests for the tracking table, its migrations and the executor.
"""

import uuid
from unittest.mock import Mock

import sqlalchemy as sa

from seedsync.db.capabilities import BackendCapabilities
from seedsync.db.executor import Executor
from seedsync.tracking.migrations import MIGRATIONS, setup_database
from seedsync.tracking.models import TrackingRecord, coerce_key_value, key_type_name
from seedsync.tracking.tracker import SeedTracker, utcnow


def record(
    seed_id,
    synchronize=True,
    created_ids=("1",),
    created_id_names=("id",),
    created_id_types=("int",),
):
    return TrackingRecord(
        seed_id=seed_id,
        table_name="table_a",
        object_hash="hash",
        synchronize=synchronize,
        created_ids=list(created_ids),
        created_id_names=list(created_id_names),
        created_id_types=list(created_id_types) if created_id_types else None,
        created_at=utcnow(),
    )


class TestTrackingRecord:
    """Test suite for TrackingRecord."""

    def test_single_primary_key(self):
        assert record("a").primary_key == 1

    def test_composite_primary_key(self):
        composite = record(
            "a",
            created_ids=["1", "baz"],
            created_id_names=["id", "foo_bar"],
            created_id_types=["int", "str"],
        )

        assert composite.primary_key == [1, "baz"]

    def test_numeric_text_key_stays_text(self):
        text_key = record("a", created_ids=["12"], created_id_types=["str"])

        assert text_key.primary_key == "12"

    def test_uuid_key(self):
        guid = uuid.UUID("12bea5e8-f872-4614-9653-8c52c513cd36")

        assert record("a", created_ids=[str(guid)], created_id_types=["uuid"]).primary_key == guid

    def test_key_type_name(self):
        assert key_type_name(12) == "int"
        assert key_type_name("12") == "str"
        assert key_type_name(uuid.uuid4()) == "uuid"
        assert key_type_name(True) == "str"

    def test_untyped_records_guess_integers(self):
        assert record("a", created_ids=["12"], created_id_types=None).primary_key == 12
        assert coerce_key_value("-3") == -3
        assert coerce_key_value("012") == "012"
        assert coerce_key_value("12bea5e8") == "12bea5e8"
        assert coerce_key_value(5) == 5


class TestMigrations:
    """Test suite for setup_database."""

    def test_applies_each_migration_once(self, empty_db):
        database = empty_db

        assert database.run(setup_database) == [name for name, _ in MIGRATIONS]
        assert database.run(setup_database) == []
        assert database.rows("seedsync_seed_entry") == []
        assert [row["name"] for row in database.rows("seedsync_migration")] == [
            name for name, _ in MIGRATIONS
        ]

    def test_adds_key_types_to_an_existing_table(self, empty_db):
        empty_db.execute(
            "CREATE TABLE seedsync_seed_entry ("
            "id INTEGER PRIMARY KEY, seed_id TEXT NOT NULL UNIQUE, table_name TEXT NOT NULL, "
            "schema_name TEXT, object_hash TEXT NOT NULL, synchronize BOOLEAN NOT NULL, "
            "created_ids TEXT NOT NULL, created_id_names TEXT NOT NULL, "
            "created_at DATETIME NOT NULL)"
        )
        empty_db.execute(
            "INSERT INTO seedsync_seed_entry (seed_id, table_name, object_hash, synchronize, "
            "created_ids, created_id_names, created_at) "
            "VALUES ('a', 'table_a', 'hash', 1, '12', 'id', '2024-01-01 00:00:00')"
        )

        empty_db.run(setup_database)

        loaded = empty_db.run(lambda executor: SeedTracker(executor).get_record("a"))
        assert loaded.created_id_types is None
        assert loaded.primary_key == 12


class TestSeedTracker:
    """Test suite for SeedTracker."""

    def _insert(self, db, *records):
        async def insert(executor):
            tracker = SeedTracker(executor)
            async with executor.transaction() as conn:
                for item in records:
                    await tracker.insert(conn, item)

        db.run(insert)

    def test_round_trip(self, db):
        self._insert(
            db,
            record(
                "a",
                created_ids=["1", "baz"],
                created_id_names=["id", "foo_bar"],
                created_id_types=["int", "str"],
            ),
        )

        loaded = db.run(lambda executor: SeedTracker(executor).get_record("a"))

        assert loaded.created_ids == ["1", "baz"]
        assert loaded.created_id_names == ["id", "foo_bar"]
        assert db.run(lambda executor: SeedTracker(executor).get_record("missing")) is None

    def test_load_all(self, db):
        self._insert(db, record("a"), record("b"))

        records = db.run(lambda executor: SeedTracker(executor).load_all())

        assert sorted(records) == ["a", "b"]

    def test_deletion_candidates(self, db):
        self._insert(
            db, record("old"), record("kept"), record("pinned", synchronize=False), record("new")
        )

        candidates = db.run(
            lambda executor: SeedTracker(executor).get_deletion_candidates({"kept"})
        )

        assert [item.seed_id for item in candidates] == ["new", "old"]

    def test_deletion_candidates_beyond_parameter_limit(self, db):
        self._insert(db, record("declared-late"), record("gone"))
        declared = [f"filler-{index}" for index in range(999)] + ["declared-late"]

        candidates = db.run(
            lambda executor: SeedTracker(executor).get_deletion_candidates(declared)
        )

        assert [item.seed_id for item in candidates] == ["gone"]

    def test_dry_run_writes_nothing(self, db):
        async def insert(executor):
            async with executor.transaction() as conn:
                await SeedTracker(executor).insert(conn, record("a"), dry_run=True)

        db.run(insert)

        assert db.rows("seedsync_seed_entry") == []


class TestBackendCapabilities:
    """Test suite for capability detection."""

    def _dialect(self, name):
        dialect = Mock()
        dialect.name = name
        return dialect

    def test_sqlite(self):
        capabilities = BackendCapabilities.for_dialect(self._dialect("sqlite"))

        assert capabilities.returning is False
        assert capabilities.concurrent_writes is False
        assert capabilities.rowid_column == "rowid"

    def test_postgresql(self):
        capabilities = BackendCapabilities.for_dialect(self._dialect("postgresql"))

        assert capabilities.returning is True
        assert capabilities.arrays is True

    def test_mysql(self):
        capabilities = BackendCapabilities.for_dialect(self._dialect("mysql"))

        assert capabilities.returning is False
        assert capabilities.last_insert_id_sql == "SELECT LAST_INSERT_ID()"
        assert capabilities.rowid_column is None


class TestExecutor:
    """Test suite for the executor."""

    def test_dry_run_mutation_is_only_logged(self, db, caplog):
        async def mutate(executor):
            async with executor.transaction() as conn:
                return await executor.execute_mutation(
                    conn, sa.text("DELETE FROM table_a"), dry_run=True
                )

        with caplog.at_level("INFO", logger="seedsync"):
            assert db.run(mutate) is None

        assert "dry-run: DELETE FROM table_a" in caplog.text

    def test_insert_returning_keys_without_returning(self, db):
        async def insert(executor):
            async with executor.transaction() as conn:
                return await executor.insert_returning_keys(
                    conn, "table_a", {"foo_bar": "baz"}, ["id", "foo_bar"]
                )

        assert db.run(insert) == {"id": 1, "foo_bar": "baz"}

    def test_supplied_keys_skip_the_last_insert_id(self, db):
        mysql = Mock()
        mysql.name = "mysql"
        guid = "12bea5e8-f872-4614-9653-8c52c513cd36"

        async def insert(executor):
            # LAST_INSERT_ID() does not exist on SQLite, so it must not be queried
            mysql_like = Executor(executor.engine, BackendCapabilities.for_dialect(mysql))
            async with mysql_like.transaction() as conn:
                return await mysql_like.insert_returning_keys(
                    conn, "table_c", {"guid": guid, "foo_bar": "baz"}, ["guid"]
                )

        assert db.run(insert) == {"guid": guid}
        assert db.rows("table_c") == [{"guid": guid, "foo_bar": "baz"}]

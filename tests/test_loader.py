"""
Tests for run_seeds.
"""

import asyncio

import pytest

from seedsync.core.options import SeedOptions
from seedsync.core.seed_file import SeedFile
from seedsync.exceptions import DuplicateID, SeedsyncError
from seedsync.loader import run_seeds


def seed_file(*entities):
    return SeedFile({"synchronize": True, "entities": list(entities)})


class TestRunSeeds:
    """Test suite for run_seeds."""

    def test_runs_seed_folder(self, db, database_url, tmp_path):
        (tmp_path / "a.yml").write_text(
            "synchronize: true\nentities:\n  - TableA: {$id: a, fooBar: baz}\n"
        )

        result = asyncio.run(run_seeds(tmp_path, database_url=database_url))

        assert result.declared == 1
        assert result.upserted == 1
        assert result.deleted == 0
        assert db.rows("table_a") == [{"id": 1, "foo_bar": "baz"}]

    def test_upserts_only_keeps_undeclared_entries(self, db):
        db.run(lambda executor: run_seeds([seed_file({"TableA": {"$id": "a"}})], executor))

        result = db.run(lambda executor: run_seeds([], executor, upserts_only=True))

        assert result.deleted == 0
        assert len(db.rows("table_a")) == 1

    def test_deletes_only(self, db):
        db.run(lambda executor: run_seeds([seed_file({"TableA": {"$id": "a"}})], executor))

        result = db.run(
            lambda executor: run_seeds(
                [seed_file({"TableA": {"$id": "b"}})], executor, deletes_only=True
            )
        )

        assert result.upserted == 0
        assert result.deleted_ids == ["a"]
        assert db.rows("table_a") == []

    def test_no_tracking_skips_tracking_table(self, empty_db):
        options = SeedOptions(no_tracking=True)
        data = {"synchronize": False, "entities": [{"TableA": {"$id": "a"}}]}

        async def run(executor):
            async with executor.transaction() as conn:
                await conn.exec_driver_sql(
                    "CREATE TABLE table_a (id INTEGER PRIMARY KEY, foo_bar TEXT)"
                )
            return await run_seeds(
                [SeedFile(data, options=options)],
                executor,
                options=options,
            )

        result = empty_db.run(run)

        assert result.upserted == 1
        tables = [row["name"] for row in empty_db.rows("sqlite_master") if row["type"] == "table"]
        assert tables == ["table_a"]

    def test_conflicting_modes(self):
        with pytest.raises(SeedsyncError):
            asyncio.run(run_seeds([], upserts_only=True, deletes_only=True))

    def test_requires_a_database(self):
        with pytest.raises(SeedsyncError, match="No database configured"):
            asyncio.run(run_seeds([]))

    def test_resolution_errors_come_first(self):
        files = [seed_file({"TableA": {"$id": "a"}}), seed_file({"TableA": {"$id": "a"}})]

        with pytest.raises(DuplicateID):
            asyncio.run(run_seeds(files))

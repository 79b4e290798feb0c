"""
Synchronization of resolved seed entries with the database.
"""

import asyncio
import logging
from typing import Dict, List, Optional

import sqlalchemy as sa

from seedsync.core.options import SeedOptions
from seedsync.core.seed_entry import Cache, SeedEntry
from seedsync.db.executor import Executor, key_clause, target_table
from seedsync.tracking.models import TrackingRecord
from seedsync.tracking.tracker import SeedTracker

logger = logging.getLogger(__name__)


class Synchronizer:
    """
    Upserts every declared entry, then deletes tracked entries that are no
    longer declared.
    """

    def __init__(self, entries: Dict[str, SeedEntry], options: Optional[SeedOptions] = None):
        self._entries = entries
        self.options = options or SeedOptions()

    def entries(self) -> Dict[str, SeedEntry]:
        """Resolved entries, keyed by $id."""
        return self._entries

    async def upsert_all(
        self,
        executor: Executor,
        cache: Optional[Cache] = None,
    ) -> List[SeedEntry]:
        """
        Insert or update every entry applicable to the current environment.

        Args:
            executor: Executor for the seeded database
            cache: Known tracking records; loaded in one query when not given

        Returns:
            The upserted entries
        """
        logger.info(f"Running upserts for {len(self._entries)} seeds")

        if cache is None:
            cache = {}

            if not self.options.no_tracking:
                logger.debug("Populating cache")
                cache.update(await SeedTracker(executor).load_all())

        limit = asyncio.Semaphore(self.options.concurrency)

        async def bounded(entry: SeedEntry) -> SeedEntry:
            async with limit:
                return await entry.upsert(executor, cache)

        work = [bounded(entry) for entry in self._entries.values() if entry.should_upsert]

        return list(await asyncio.gather(*work))

    async def delete_missing(self, executor: Executor) -> List[TrackingRecord]:
        """
        Delete synchronized entries that were seeded before but are no
        longer declared.

        Returns:
            Tracking records of the deleted entries
        """
        if self.options.no_tracking:
            return []

        logger.info("Checking for any seeds that were previously present and no longer are")

        tracker = SeedTracker(executor)
        candidates = await tracker.get_deletion_candidates(self._entries.keys())
        dry_run = self.options.dry_run

        deleted: List[TrackingRecord] = []

        for record in candidates:
            logger.info(f"Running delete of seed: {record.seed_id}")

            table = target_table(record.table_name, record.created_id_names, record.schema_name)

            async with executor.transaction() as conn:
                await executor.execute_mutation(
                    conn,
                    sa.delete(table).where(
                        key_clause(table, record.created_id_names, record.key_values)
                    ),
                    dry_run,
                )
                await tracker.delete(conn, record.seed_id, dry_run)

            deleted.append(record)

        return deleted

    async def synchronize(
        self,
        executor: Executor,
        cache: Optional[Cache] = None,
    ) -> Dict[str, SeedEntry]:
        """Upsert everything, then delete what is no longer declared."""
        await self.upsert_all(executor, cache)
        await self.delete_missing(executor)

        return self._entries

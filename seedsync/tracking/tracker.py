"""
Tracker for seed entries previously written to the database.
"""

import logging
from datetime import datetime, timezone
from typing import Collection, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection

from seedsync.db.executor import Executor
from seedsync.tracking.models import TrackingRecord, seed_entries

logger = logging.getLogger(__name__)

# Most backends cap the number of bound parameters in one statement
MAX_EXCLUDED_IDS = 999


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SeedTracker:
    """
    Reads and writes the tracking table.

    Each row records one seed entry that was created: the table it went
    into, the primary key it received, a hash of its columns, and whether
    later runs should keep it synchronized.
    """

    def __init__(self, executor: Executor):
        """
        Initialize the seed tracker.

        Args:
            executor: Executor connected to the seeded database
        """
        self.executor = executor

    async def get_record(self, seed_id: str) -> Optional[TrackingRecord]:
        """
        Get the tracking record for a seed entry.

        Args:
            seed_id: The $id of the entry

        Returns:
            The TrackingRecord or None
        """
        row = await self.executor.fetch_one(
            sa.select(seed_entries).where(seed_entries.c.seed_id == seed_id)
        )
        return TrackingRecord.model_validate(dict(row)) if row else None

    async def load_all(self) -> Dict[str, TrackingRecord]:
        """Load every tracking record, keyed by $id."""
        rows = await self.executor.fetch_all(sa.select(seed_entries))
        records = [TrackingRecord.model_validate(dict(row)) for row in rows]
        return {record.seed_id: record for record in records}

    async def get_records(self) -> List[TrackingRecord]:
        """Get all tracking records, oldest first."""
        rows = await self.executor.fetch_all(
            sa.select(seed_entries).order_by(seed_entries.c.created_at, seed_entries.c.id)
        )
        return [TrackingRecord.model_validate(dict(row)) for row in rows]

    async def get_deletion_candidates(self, declared_ids: Collection[str]) -> List[TrackingRecord]:
        """
        Get synchronized records whose entry is no longer declared.

        Newest records come first, so children tend to be deleted before the
        parents they reference. Only the first ``MAX_EXCLUDED_IDS`` declared
        ids fit in the query; the full set is re-checked here.

        Args:
            declared_ids: Every $id declared in the current run

        Returns:
            Records that should be deleted
        """
        excluded = list(declared_ids)[:MAX_EXCLUDED_IDS]

        rows = await self.executor.fetch_all(
            sa.select(seed_entries)
            .where(seed_entries.c.synchronize.is_(True))
            .where(seed_entries.c.seed_id.not_in(excluded))
            .order_by(seed_entries.c.created_at.desc(), seed_entries.c.id.desc())
        )

        records = [TrackingRecord.model_validate(dict(row)) for row in rows]
        return [record for record in records if record.seed_id not in declared_ids]

    async def insert(
        self,
        conn: AsyncConnection,
        record: TrackingRecord,
        dry_run: bool = False,
    ) -> None:
        """Write a new tracking record within the caller's transaction."""
        await self.executor.execute_mutation(
            conn,
            sa.insert(seed_entries).values(**record.model_dump()),
            dry_run,
        )
        logger.debug(f"Tracked seed entry {record.seed_id} in {record.table_name}")

    async def update_hash(
        self,
        conn: AsyncConnection,
        seed_id: str,
        object_hash: str,
        dry_run: bool = False,
    ) -> None:
        await self.executor.execute_mutation(
            conn,
            sa.update(seed_entries)
            .where(seed_entries.c.seed_id == seed_id)
            .values(object_hash=object_hash),
            dry_run,
        )

    async def mark_unsynchronized(
        self,
        conn: AsyncConnection,
        seed_id: str,
        dry_run: bool = False,
    ) -> None:
        await self.executor.execute_mutation(
            conn,
            sa.update(seed_entries)
            .where(seed_entries.c.seed_id == seed_id)
            .values(synchronize=False),
            dry_run,
        )
        logger.debug(f"Marked {seed_id} as non-synchronize")

    async def delete(
        self,
        conn: AsyncConnection,
        seed_id: str,
        dry_run: bool = False,
    ) -> None:
        await self.executor.execute_mutation(
            conn,
            sa.delete(seed_entries).where(seed_entries.c.seed_id == seed_id),
            dry_run,
        )

"""
A single declared seed entry, which corresponds to a single database row.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import sqlalchemy as sa

from seedsync.core.naming import NAMING_STRATEGIES, NamingStrategy, as_is
from seedsync.core.options import SeedOptions
from seedsync.core.template import render_meta
from seedsync.core.values import (
    Reference,
    Value,
    canonical_id,
    content_hash,
    iter_references,
    prepare_value,
    substitute_references,
)
from seedsync.db.executor import Executor, key_clause, target_table
from seedsync.exceptions import (
    InvalidSeed,
    InvalidSeedEntryCreation,
    SynchronizeWithNoTracking,
    UnresolvableID,
    UpdateOfDeletedEntry,
    UpdateOfMultipleEntries,
)
from seedsync.tracking.models import PrimaryKey, TrackingRecord, key_type_name
from seedsync.tracking.tracker import SeedTracker, utcnow

logger = logging.getLogger(__name__)

# Known seed entries that already exist in the database, keyed by $id
Cache = Dict[str, TrackingRecord]

Synchronize = Union[bool, List[str]]


def to_list(value: Any) -> Optional[List[Any]]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class SeedEntry:
    """
    One declared record.

    Constructed from ``{TableName: {"$id": ..., column: value}}``. Entry-level
    ``$``-prefixed fields override the defaults inherited from the seed file.
    """

    def __init__(
        self,
        raw: Mapping[str, Any],
        naming_strategy: Optional[NamingStrategy] = as_is,
        table_mapping: Optional[Mapping[str, str]] = None,
        schema_name: Optional[str] = None,
        synchronize: Synchronize = False,
        environments: Optional[List[str]] = None,
        options: Optional[SeedOptions] = None,
        environment: Optional[str] = None,
    ):
        if len(raw) == 0:
            raise InvalidSeed("SeedEntry created with no name")
        if len(raw) > 1:
            raise InvalidSeed(f"SeedEntry created with multiple names: {', '.join(raw)}")

        ((declared_name, declared_fields),) = raw.items()

        if not isinstance(declared_fields, Mapping):
            raise InvalidSeed(f"SeedEntry {declared_name} must be a mapping of columns")

        fields = dict(declared_fields)

        if "$id" not in fields:
            raise InvalidSeed(f"SeedEntry {declared_name} is missing $id")

        raw_id = fields.pop("$id")
        raw_id_column_name = fields.pop("$idColumnName", "id")
        entry_naming_strategy = fields.pop("$namingStrategy", None)
        entry_schema_name = fields.pop("$schemaName", None)
        entry_synchronize = fields.pop("$synchronize", None)
        entry_environments = fields.pop("$env", None)

        self.options = options or SeedOptions()
        self.environment = environment

        self.synchronize: Synchronize = (
            entry_synchronize if entry_synchronize is not None else synchronize
        )
        self.schema_name: Optional[str] = (
            entry_schema_name if entry_schema_name is not None else schema_name
        )

        if entry_naming_strategy is not None:
            if entry_naming_strategy not in NAMING_STRATEGIES:
                raise InvalidSeed(f"Invalid $namingStrategy: {entry_naming_strategy}")
            naming_strategy = NAMING_STRATEGIES[entry_naming_strategy]

        if not callable(naming_strategy):
            raise InvalidSeed(f"Invalid naming strategy for {declared_name}: {naming_strategy!r}")

        self.naming_strategy: NamingStrategy = naming_strategy

        table_mapping = table_mapping or {}
        if declared_name in table_mapping:
            self.table_name: str = table_mapping[declared_name]
        else:
            self.table_name = naming_strategy(declared_name)

        self.environments: Optional[List[str]] = to_list(
            entry_environments if entry_environments is not None else environments
        )

        context: Dict[str, Any] = {"table": self.table_name, "tableName": self.table_name}

        def render(value: str) -> str:
            return render_meta(value, context)

        self.seed_id: str = canonical_id(prepare_value(raw_id, render))
        self.id_column_names: List[str] = [
            str(name) for name in to_list(prepare_value(raw_id_column_name, render))
        ]
        context["idColumn"] = ",".join(self.id_column_names)

        # only top level keys are column names, nested values are JSON data
        self._columns: Dict[str, Value] = {
            naming_strategy(key): prepare_value(value, render) for key, value in fields.items()
        }

        self._resolved = False
        self._dependencies: List["SeedEntry"] = []
        self._creation: Optional["asyncio.Future[SeedEntry]"] = None
        self._primary_key: Optional[PrimaryKey] = None

        logger.debug(f"Loaded seed entry {self.seed_id}")

    def __repr__(self) -> str:
        return f"<SeedEntry(seed_id={self.seed_id}, table={self.table_name})>"

    @property
    def primary_key(self) -> Optional[PrimaryKey]:
        """The primary key, once inserted or found. A list for composite keys."""
        return self._primary_key

    @property
    def is_created(self) -> bool:
        return self._primary_key is not None

    @property
    def resolved(self) -> bool:
        return self._resolved

    @property
    def dependencies(self) -> List["SeedEntry"]:
        return list(self._dependencies)

    @property
    def columns(self) -> Dict[str, Value]:
        return dict(self._columns)

    @property
    def own_columns(self) -> Dict[str, Value]:
        """Columns, excluding references to other entries."""
        return {
            key: value for key, value in self._columns.items() if not isinstance(value, Reference)
        }

    def applies_to(self, environment: Optional[str]) -> bool:
        if self.environments is None:
            return True
        return environment in self.environments

    def synchronizes_in(self, environment: Optional[str]) -> bool:
        if isinstance(self.synchronize, bool):
            return self.synchronize
        return environment in self.synchronize

    @property
    def should_upsert(self) -> bool:
        """If this entry qualifies to be created in the current environment."""
        return self.applies_to(self.environment)

    @property
    def should_synchronize(self) -> bool:
        """If this entry should be updated or deleted by later runs."""
        return self.synchronizes_in(self.environment)

    def resolve_dependencies(self, all_entries: Mapping[str, "SeedEntry"]) -> List["SeedEntry"]:
        """
        Link every reference in the columns to the entry it points at.

        Args:
            all_entries: Every known entry, keyed by $id

        Returns:
            The entries this one depends on, in order of first reference

        Raises:
            UnresolvableID: if a reference points at an unknown $id
        """
        dependencies: List[SeedEntry] = []

        for reference in iter_references(self._columns):
            entry = all_entries.get(reference.seed_id)

            if entry is None:
                raise UnresolvableID(
                    f"Unable to resolve $id to {reference.seed_id} "
                    f"(referenced by {self.seed_id} in {self.table_name})"
                )

            if entry not in dependencies:
                dependencies.append(entry)
                logger.debug(f"Resolved reference to $id: {reference.seed_id}")

        self._dependencies = dependencies
        self._resolved = True

        return list(dependencies)

    async def upsert(self, executor: Executor, cache: Optional[Cache] = None) -> "SeedEntry":
        """
        Make this entry, and everything it references, exist in the database.

        Concurrent callers share a single persistence attempt.
        """
        if self._creation is None:
            # a diamond dependency must not start the creation twice
            self._creation = asyncio.ensure_future(self._persist(executor, cache))

        return await self._creation

    async def _persist(self, executor: Executor, cache: Optional[Cache]) -> "SeedEntry":
        if not self.should_upsert:
            raise InvalidSeedEntryCreation(
                f"Tried to create a seed entry ({self.seed_id}) that should not have been "
                f"(environment {self.environment!r} is not in {self.environments})."
            )

        if not self._resolved:
            # fails only when there was something to resolve
            self.resolve_dependencies({})

        # all dependencies are created before this entry is
        await asyncio.gather(*(entry.upsert(executor, cache) for entry in self._dependencies))

        payload = substitute_references(self._columns, self._resolve_reference)
        tracker = SeedTracker(executor)

        existing: Optional[TrackingRecord] = None
        if cache is not None:
            existing = cache.get(self.seed_id)
        elif not self.options.no_tracking:
            existing = await tracker.get_record(self.seed_id)

        if existing is None:
            await self._insert(executor, tracker, payload, cache)
        else:
            await self._reconcile(executor, tracker, payload, existing, cache)

        return self

    def _resolve_reference(self, reference: Reference) -> Any:
        target = next(
            (entry for entry in self._dependencies if entry.seed_id == reference.seed_id), None
        )

        if target is None:
            raise UnresolvableID(f"The reference to $id {reference.seed_id} failed to lookup")

        if reference.column is not None:
            if reference.column not in target.id_column_names:
                raise InvalidSeedEntryCreation(
                    f"Reference to $id {reference.seed_id} from {self.seed_id} referenced "
                    f"$idColumn {reference.column}, but that entry's key columns are "
                    f"{target.id_column_names}"
                )
        elif len(target.id_column_names) > 1:
            raise InvalidSeedEntryCreation(
                f"Reference to $id {reference.seed_id} from {self.seed_id} is ambiguous: "
                f"it has a composite key {target.id_column_names}, name one with $idColumn"
            )

        if target.primary_key is None:
            if self.options.dry_run:
                return f"<dry-run:{target.seed_id}>"

            raise InvalidSeedEntryCreation(
                f"The reference to $id {reference.seed_id} from {self.seed_id} has no primary key"
            )

        if reference.column is None:
            return target.primary_key

        index = target.id_column_names.index(reference.column)
        values = to_list(target.primary_key)
        value = values[index] if index < len(values) else None

        if value is None:
            raise InvalidSeedEntryCreation(f"Reference to $idColumn {reference.column} was undefined")

        return value

    async def _insert(
        self,
        executor: Executor,
        tracker: SeedTracker,
        payload: Dict[str, Any],
        cache: Optional[Cache],
    ) -> None:
        dry_run = self.options.dry_run
        logger.debug(f"Running insert of seed: {self.seed_id}")

        async with executor.transaction() as conn:
            inserted = await executor.insert_returning_keys(
                conn,
                self.table_name,
                payload,
                self.id_column_names,
                schema_name=self.schema_name,
                dry_run=dry_run,
            )

            if dry_run:
                return

            if not inserted:
                raise InvalidSeedEntryCreation(
                    f"Seed {self.seed_id} did not return its created ID correctly"
                )

            key_values = [inserted.get(name) for name in self.id_column_names]

            if any(value is None for value in key_values):
                raise InvalidSeedEntryCreation(f"Seed {self.seed_id} returned an invalid ID")

            record = TrackingRecord(
                seed_id=self.seed_id,
                table_name=self.table_name,
                schema_name=self.schema_name,
                object_hash=content_hash(payload),
                synchronize=self.should_synchronize,
                created_ids=[str(value) for value in key_values],
                created_id_names=list(self.id_column_names),
                created_id_types=[key_type_name(value) for value in key_values],
                created_at=utcnow(),
            )

            if not self.options.no_tracking:
                await tracker.insert(conn, record)

        self._primary_key = key_values[0] if len(key_values) == 1 else key_values

        if cache is not None and not self.options.no_tracking:
            cache[self.seed_id] = record

    async def _reconcile(
        self,
        executor: Executor,
        tracker: SeedTracker,
        payload: Dict[str, Any],
        existing: TrackingRecord,
        cache: Optional[Cache],
    ) -> None:
        dry_run = self.options.dry_run
        self._primary_key = existing.primary_key

        if self.options.no_tracking and (self.should_synchronize or existing.synchronize):
            raise SynchronizeWithNoTracking(
                f"When using no_tracking, synchronize seed entries cannot be created ({self.seed_id})"
            )

        if self.should_synchronize and existing.synchronize:
            current_hash = content_hash(payload)

            if current_hash == existing.object_hash:
                return

            logger.debug(f"Running update of seed: {self.seed_id}")

            async with executor.transaction() as conn:
                if payload:
                    table = target_table(
                        self.table_name,
                        [*payload, *existing.created_id_names],
                        self.schema_name,
                        payload,
                    )
                    statement = (
                        sa.update(table)
                        .where(key_clause(table, existing.created_id_names, existing.key_values))
                        .values(payload)
                    )
                    count = await executor.execute_mutation(conn, statement, dry_run)

                    if count == 0:
                        raise UpdateOfDeletedEntry(
                            f"Tried to perform an update on deleted entry: $id {self.seed_id} "
                            f"in {self.table_name}"
                        )
                    if count is not None and count > 1:
                        raise UpdateOfMultipleEntries(
                            f"Tried to perform an update on $id {self.seed_id}, but ended up "
                            f"changing more than one record in {self.table_name}!"
                        )

                await tracker.update_hash(conn, self.seed_id, current_hash, dry_run)

            if cache is not None and not dry_run:
                cache[self.seed_id] = existing.model_copy(update={"object_hash": current_hash})

        elif existing.synchronize:
            # inserted with synchronize, but not anymore
            async with executor.transaction() as conn:
                await tracker.mark_unsynchronized(conn, self.seed_id, dry_run)

            if cache is not None and not dry_run:
                cache[self.seed_id] = existing.model_copy(update={"synchronize": False})

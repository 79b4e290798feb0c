"""
Loading seed files from disk and running them against a database.
"""

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from seedsync.core.options import SeedOptions
from seedsync.core.resolver import resolve_all_entries
from seedsync.core.seed_file import SeedFile
from seedsync.core.template import Helpers, render_seed
from seedsync.db.executor import Executor
from seedsync.exceptions import InvalidSeed, SeedsyncError
from seedsync.tracking.migrations import setup_database

logger = logging.getLogger(__name__)

SEED_FILE_SUFFIXES = (".yml", ".yaml")

PathLike = Union[str, Path]


class SeedRunResult(BaseModel):
    """Result of one seed run."""

    declared: int
    upserted: int
    deleted: int
    deleted_ids: List[str] = Field(default_factory=list)
    duration: float
    dry_run: bool = False


def load_file(
    path: PathLike,
    options: Optional[SeedOptions] = None,
    environment: Optional[str] = None,
    helpers: Optional[Helpers] = None,
) -> SeedFile:
    """
    Render and load a single YAML seed file.

    Args:
        path: Path to the seed file
        options: Run options passed to every entry
        environment: The active environment
        helpers: Functions available to the seed file's template

    Returns:
        The validated SeedFile
    """
    path = Path(path)

    with open(path) as f:
        contents = f.read()

    try:
        raw = render_seed(contents, helpers)
    except InvalidSeed as e:
        raise InvalidSeed(f"Could not load {path.name}: {e}") from e

    return SeedFile.load_from_rendered_file(
        raw, options=options, file_name=path.name, environment=environment
    )


def find_seed_files(path: PathLike) -> List[Path]:
    """Seed files in a folder sorted by name, or the single file given."""
    path = Path(path)

    if not path.exists():
        raise SeedsyncError(f"Seed path does not exist: {path}")

    if path.is_file():
        return [path]

    return sorted(
        file for file in path.iterdir() if file.is_file() and file.suffix in SEED_FILE_SUFFIXES
    )


def load_files(
    path: PathLike,
    options: Optional[SeedOptions] = None,
    environment: Optional[str] = None,
    helpers: Optional[Helpers] = None,
) -> List[SeedFile]:
    """
    Load every seed file in a folder, in file name order.

    Args:
        path: A folder of seed files, or one seed file
        options: Run options passed to every entry
        environment: The active environment
        helpers: Functions available to every seed file's template

    Returns:
        The loaded seed files
    """
    files = find_seed_files(path)
    logger.info(f"Loading {len(files)} seed file(s) from {path}")

    return [
        load_file(file, options=options, environment=environment, helpers=helpers)
        for file in files
    ]


async def run_seeds(
    seeds: Union[PathLike, Iterable[SeedFile]],
    executor: Optional[Executor] = None,
    database_url: Optional[str] = None,
    options: Optional[SeedOptions] = None,
    environment: Optional[str] = None,
    upserts_only: bool = False,
    deletes_only: bool = False,
) -> SeedRunResult:
    """
    Load, resolve and synchronize seed files.

    Args:
        seeds: A folder or file to load, or already loaded seed files
        executor: Executor for the seeded database
        database_url: Used to create an executor when none is given
        options: Run options
        environment: The active environment
        upserts_only: Skip deleting entries that are no longer declared
        deletes_only: Skip inserting and updating declared entries

    Returns:
        A summary of the run
    """
    if upserts_only and deletes_only:
        raise SeedsyncError("upserts_only and deletes_only cannot be used together")

    options = options or SeedOptions()
    start_time = time.time()

    if isinstance(seeds, (str, Path)):
        seed_files = load_files(seeds, options=options, environment=environment)
    else:
        seed_files = list(seeds)

    # fails before any database work on bad references
    synchronizer = resolve_all_entries(seed_files, options)

    owns_executor = executor is None
    if executor is None:
        if not database_url:
            raise SeedsyncError("No database configured: pass an executor or a database_url")
        executor = Executor.from_url(database_url)

    try:
        if not options.no_tracking:
            await setup_database(executor)

        upserted = []
        if not deletes_only:
            upserted = await synchronizer.upsert_all(executor)

        deleted = []
        if not upserts_only:
            deleted = await synchronizer.delete_missing(executor)
    finally:
        if owns_executor:
            await executor.dispose()

    result = SeedRunResult(
        declared=len(synchronizer.entries()),
        upserted=len(upserted),
        deleted=len(deleted),
        deleted_ids=[record.seed_id for record in deleted],
        duration=time.time() - start_time,
        dry_run=options.dry_run,
    )

    logger.info(
        f"Seed run complete: {result.upserted} upserted, {result.deleted} deleted "
        f"in {result.duration:.2f}s"
    )

    return result

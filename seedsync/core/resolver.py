"""
Resolution of seed entries across seed files.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from seedsync.core.options import SeedOptions
from seedsync.core.seed_entry import SeedEntry
from seedsync.core.seed_file import SeedFile
from seedsync.core.synchronizer import Synchronizer
from seedsync.exceptions import CircularDependency, DuplicateID

logger = logging.getLogger(__name__)


def _check_for_cycles(entries: Dict[str, SeedEntry]) -> None:
    """Reject reference cycles, which could never be inserted."""
    done = set()

    for root in entries.values():
        if root.seed_id in done:
            continue

        # the current path, with what is left to visit below each entry
        path: List[SeedEntry] = [root]
        on_path = {root.seed_id}
        pending: List[Iterator[SeedEntry]] = [iter(root.dependencies)]

        while pending:
            dependency = next(pending[-1], None)

            if dependency is None:
                finished = path.pop()
                pending.pop()
                on_path.discard(finished.seed_id)
                done.add(finished.seed_id)
                continue

            if dependency.seed_id in done:
                continue

            if dependency.seed_id in on_path:
                cycle = path[path.index(dependency):] + [dependency]
                raise CircularDependency(
                    "Circular dependency detected: " + " -> ".join(e.seed_id for e in cycle)
                )

            path.append(dependency)
            on_path.add(dependency.seed_id)
            pending.append(iter(dependency.dependencies))


def resolve_all_entries(
    seed_files: Iterable[SeedFile],
    options: Optional[SeedOptions] = None,
) -> Synchronizer:
    """
    Merge every entry of every seed file and link their references.

    Everything here happens in memory, so bad input never reaches the
    database.

    Args:
        seed_files: Seed files, in load order
        options: Run options

    Returns:
        A Synchronizer over the resolved entries

    Raises:
        DuplicateID: if two entries share a $id
        UnresolvableID: if a reference points at an unknown $id
        CircularDependency: if entries reference each other in a cycle
    """
    seed_entries: Dict[str, SeedEntry] = {}

    for seed_file in seed_files:
        for entry in seed_file.entries:
            if entry.seed_id in seed_entries:
                raise DuplicateID(
                    f"Found duplicate seed entry '{entry.seed_id}'"
                    + (f" in {seed_file.file_name}" if seed_file.file_name else "")
                    + "!"
                )

            seed_entries[entry.seed_id] = entry

    logger.debug("Resolving inter-seed references")

    for entry in seed_entries.values():
        entry.resolve_dependencies(seed_entries)

    _check_for_cycles(seed_entries)

    return Synchronizer(seed_entries, options)

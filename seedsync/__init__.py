"""
seedsync - Declarative, idempotent database seeding for SQLAlchemy.

Seed files declare the rows a database should contain. seedsync inserts what
is missing, updates what changed, and deletes what is no longer declared,
in foreign key order.
"""

from seedsync.core import (
    SeedEntry,
    SeedFile,
    SeedOptions,
    Synchronizer,
    render_seed,
    resolve_all_entries,
)
from seedsync.db import BackendCapabilities, Executor
from seedsync.exceptions import SeedsyncError
from seedsync.loader import load_file, load_files, run_seeds
from seedsync.tracking import SeedTracker, setup_database

__version__ = "0.1.0"

__all__ = [
    "SeedEntry",
    "SeedFile",
    "SeedOptions",
    "Synchronizer",
    "resolve_all_entries",
    "BackendCapabilities",
    "Executor",
    "SeedsyncError",
    "SeedTracker",
    "setup_database",
    "load_file",
    "load_files",
    "render_seed",
    "run_seeds",
]

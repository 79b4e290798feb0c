"""Core components of the seedsync package."""

from .naming import NAMING_STRATEGIES
from .options import SeedOptions
from .seed_entry import SeedEntry
from .seed_file import SeedFile
from .synchronizer import Synchronizer
from .template import render_seed
from .resolver import resolve_all_entries

__all__ = [
    "NAMING_STRATEGIES",
    "SeedOptions",
    "SeedEntry",
    "SeedFile",
    "Synchronizer",
    "resolve_all_entries",
    "render_seed",
]

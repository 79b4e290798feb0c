"""Tracking of seeded entries."""

from .migrations import setup_database
from .models import TrackingRecord
from .tracker import SeedTracker

__all__ = ["SeedTracker", "TrackingRecord", "setup_database"]

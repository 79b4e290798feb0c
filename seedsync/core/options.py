"""
Run-level options for seeding.
"""

from pydantic import BaseModel, Field


class SeedOptions(BaseModel):
    """Options for how a seed run behaves."""

    # Log the INSERT / UPDATE / DELETE statements instead of running them
    dry_run: bool = False
    # Never track created entries; incompatible with synchronize
    no_tracking: bool = False
    # Upper bound of independent entries persisted at once
    concurrency: int = Field(default=50, ge=1)

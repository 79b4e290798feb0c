"""
Custom exceptions for seedsync.

Every error below means the run cannot proceed safely. None of them are
retried by the engine.
"""


class SeedsyncError(Exception):
    """Base exception for seed-related errors"""
    pass


class InvalidSeed(SeedsyncError):
    """Raised when a seed file or seed entry is malformed"""
    pass


class CircularDependency(InvalidSeed):
    """Raised when seed entries reference each other in a cycle"""
    pass


class InvalidSeedEntryCreation(SeedsyncError):
    """Raised when a seed entry cannot be persisted"""
    pass


class UnresolvableID(SeedsyncError):
    """Raised when a reference points at a $id that was never declared"""
    pass


class DuplicateID(SeedsyncError):
    """Raised when two seed entries declare the same $id"""
    pass


class UpdateOfDeletedEntry(SeedsyncError):
    """Raised when a synchronized update matched no database row"""
    pass


class UpdateOfMultipleEntries(SeedsyncError):
    """Raised when a synchronized update matched more than one database row"""
    pass


class SynchronizeWithNoTracking(SeedsyncError):
    """Raised when synchronization is requested while tracking is disabled"""
    pass

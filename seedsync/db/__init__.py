"""Database access for seedsync."""

from .capabilities import BackendCapabilities
from .executor import Executor

__all__ = ["BackendCapabilities", "Executor"]

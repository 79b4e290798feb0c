"""Utility modules for seedsync."""

from .config import Config
from .environment import EnvironmentManager

__all__ = ["EnvironmentManager", "Config"]

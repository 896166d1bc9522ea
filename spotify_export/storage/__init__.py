"""
Storage Layer.

This package handles all data persistence: the configuration file, the
library snapshot cache and the stored OAuth tokens.
"""

from .cache import CacheSnapshot, SnapshotCache
from .config_manager import ConfigManager
from .token_store import TokenSet, TokenStore

__all__ = ["CacheSnapshot", "ConfigManager", "SnapshotCache", "TokenSet", "TokenStore"]

"""
A file-based JSON snapshot of fully loaded library collections.

Only a completed "load all" writes here, so a stored snapshot is always
treated as complete when it is read back.
"""

import json
import logging
import time
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from spotify_export.models.items import AlbumInfo, ArtistInfo, PlaylistInfo, TrackInfo
from spotify_export.models.state import ResourceKind, ResourceState

log = logging.getLogger(__name__)

STORAGE_KEY = "spotify-export-cache"


class CacheSnapshot(BaseModel):
    """The persisted record: four item sequences, four totals and a timestamp."""

    key: str = STORAGE_KEY
    playlists: list[PlaylistInfo] = Field(default_factory=list)
    playlists_total: int = 0
    albums: list[AlbumInfo] = Field(default_factory=list)
    albums_total: int = 0
    tracks: list[TrackInfo] = Field(default_factory=list)
    tracks_total: int = 0
    artists: list[ArtistInfo] = Field(default_factory=list)
    artists_total: int = 0
    cached_at: int = 0

    def items(self, kind: ResourceKind) -> list:
        return getattr(self, kind.value)

    def total(self, kind: ResourceKind) -> int:
        """The stored total, falling back to the number of stored items."""
        return getattr(self, f"{kind.value}_total") or len(self.items(kind))

    @property
    def is_empty(self) -> bool:
        return not any(self.items(kind) for kind in ResourceKind)


class SnapshotCache:
    """
    Reads and writes the single snapshot file. Storage failures are logged and
    never raised to the caller.
    """

    FILE_NAME = "export_cache.json"

    def __init__(self, cache_dir_path: Path):
        """
        Args:
            cache_dir_path: The directory where the snapshot file is stored.
        """
        self.cache_dir = cache_dir_path
        self.cache_path = cache_dir_path / self.FILE_NAME

    def load(self) -> CacheSnapshot | None:
        """Returns the stored snapshot, or None if missing or unreadable."""
        if not self.cache_path.is_file():
            return None

        try:
            with open(self.cache_path, encoding="utf-8") as f:
                data = json.load(f)
            snapshot = CacheSnapshot.model_validate(data)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            log.warning(f"Failed to read export cache: {e}")
            return None
        except ValidationError as e:
            log.warning(f"Ignoring malformed export cache: {e.error_count()} errors")
            log.debug(f"Cache validation errors: {e}")
            return None

        if snapshot.key != STORAGE_KEY:
            log.warning(f"Ignoring export cache with unknown key '{snapshot.key}'")
            return None
        return snapshot

    def save_resource(self, kind: ResourceKind, resource: ResourceState) -> bool:
        """
        Stores one fully loaded collection, keeping the other collections as
        they were last stored.
        """
        snapshot = self.load() or CacheSnapshot()
        snapshot = snapshot.model_copy(
            update={
                kind.value: list(resource.items),
                f"{kind.value}_total": resource.pagination.total_items,
                "cached_at": int(time.time() * 1000),
            }
        )
        return self._write(snapshot)

    def _write(self, snapshot: CacheSnapshot) -> bool:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            payload = snapshot.model_dump_json()
            with open(self.cache_path, "w", encoding="utf-8") as f:
                f.write(payload)
            log.debug(f"Saved export cache to {self.cache_path}")
            return True
        except (TypeError, OSError) as e:
            log.warning(f"Failed to save export cache: {e}")
            return False

    def clear(self) -> bool:
        """Removes the stored snapshot."""
        try:
            self.cache_path.unlink(missing_ok=True)
            return True
        except OSError as e:
            log.error(f"Failed to clear export cache: {e}")
            return False

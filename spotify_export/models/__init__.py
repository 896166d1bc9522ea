"""
Data Models Layer.

This package contains the Pydantic models and immutable dataclasses that define
the core data structures: configuration, library items, export records and the
application state snapshot.
"""

from .config import ExportConfig
from .export import (
    ExportedAlbum,
    ExportedArtist,
    ExportedData,
    ExportedPlaylist,
    ExportedTrack,
)
from .items import AlbumInfo, ArtistInfo, LibraryItem, PlaylistInfo, TrackInfo
from .state import (
    CursorPaginationState,
    ExportPhase,
    ExportState,
    PaginationState,
    ResourceKind,
    ResourceState,
)
from .stats import ExportStats, PlaylistExportProgress

__all__ = [
    "AlbumInfo",
    "ArtistInfo",
    "CursorPaginationState",
    "ExportConfig",
    "ExportPhase",
    "ExportState",
    "ExportStats",
    "ExportedAlbum",
    "ExportedArtist",
    "ExportedData",
    "ExportedPlaylist",
    "ExportedTrack",
    "LibraryItem",
    "PaginationState",
    "PlaylistExportProgress",
    "PlaylistInfo",
    "ResourceKind",
    "ResourceState",
    "TrackInfo",
]

"""
Immutable snapshots of the application state.

Every mutation builds a new snapshot with `dataclasses.replace` and installs
it in the `StateStore`; nothing is modified in place.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Generic, TypeVar

from spotify_export.models.export import ExportedData
from spotify_export.models.items import (
    AlbumInfo,
    ArtistInfo,
    LibraryItem,
    PlaylistInfo,
    TrackInfo,
)
from spotify_export.models.stats import ExportStats, PlaylistExportProgress

ItemT = TypeVar("ItemT", bound=LibraryItem)


class ExportPhase(str, Enum):
    IDLE = "idle"
    LOADING_PLAYLISTS = "loading-playlists"
    SELECTING = "selecting"
    EXPORTING = "exporting"
    COMPLETE = "complete"
    ERROR = "error"


class ResourceKind(str, Enum):
    """The four library collections that can be exported."""

    PLAYLISTS = "playlists"
    ALBUMS = "albums"
    TRACKS = "tracks"
    ARTISTS = "artists"


@dataclass(frozen=True)
class PaginationState:
    current_page: int = 1
    total_items: int = 0
    has_more_to_load: bool = True
    # Raw server offset; counts entries that were dropped as unusable
    next_offset: int = 0
    loading_all: bool = False


@dataclass(frozen=True)
class CursorPaginationState(PaginationState):
    # None means "start from the beginning" or "known exhausted"
    cursor: str | None = None


@dataclass(frozen=True)
class ResourceState(Generic[ItemT]):
    """Accumulated items and pagination for one collection."""

    items: tuple[ItemT, ...] = ()
    loading: bool = False
    pagination: PaginationState = field(default_factory=PaginationState)

    @property
    def loaded_count(self) -> int:
        return len(self.items)

    @property
    def selected(self) -> tuple[ItemT, ...]:
        return tuple(item for item in self.items if item.selected)


@dataclass(frozen=True)
class ExportState:
    phase: ExportPhase = ExportPhase.IDLE

    playlists: ResourceState[PlaylistInfo] = field(default_factory=ResourceState)
    albums: ResourceState[AlbumInfo] = field(default_factory=ResourceState)
    tracks: ResourceState[TrackInfo] = field(default_factory=ResourceState)
    artists: ResourceState[ArtistInfo] = field(
        default_factory=lambda: ResourceState(pagination=CursorPaginationState())
    )

    total_playlists_to_export: int = 0
    playlists_exported: int = 0
    current_playlist: PlaylistExportProgress | None = None
    total_stats: ExportStats = field(default_factory=ExportStats)

    exported_data: ExportedData | None = None
    json_output: str = ""
    error: str | None = None

    def resource(self, kind: ResourceKind) -> ResourceState:
        return getattr(self, kind.value)

    def with_resource(self, kind: ResourceKind, resource: ResourceState) -> "ExportState":
        return replace(self, **{kind.value: resource})

    @property
    def has_selection(self) -> bool:
        return any(self.resource(kind).selected for kind in ResourceKind)

    @property
    def has_items(self) -> bool:
        return any(self.resource(kind).items for kind in ResourceKind)


def initial_resource_state(kind: ResourceKind) -> ResourceState:
    """A fresh, empty resource with the pagination discipline of its kind."""
    if kind is ResourceKind.ARTISTS:
        return ResourceState(pagination=CursorPaginationState())
    return ResourceState()

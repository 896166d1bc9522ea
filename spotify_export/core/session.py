"""
The session-scoped orchestrator that owns the state store, the four loaders,
the snapshot cache and the export pipeline.
"""

import logging
from dataclasses import replace
from pathlib import Path

import aiofiles

from spotify_export.api.client import SpotifyAPIClient
from spotify_export.exceptions import ExportNotReadyError
from spotify_export.models.config import ExportConfig
from spotify_export.models.state import (
    ExportPhase,
    ExportState,
    ResourceKind,
    initial_resource_state,
)
from spotify_export.storage.cache import SnapshotCache

from .loaders import AlbumLoader, ArtistLoader, PlaylistLoader, ResourceLoader, TrackLoader
from .pipeline import ExportPipeline
from .store import StateStore

log = logging.getLogger(__name__)


class ExportSession:
    """
    Constructed once per run of the application and passed to whatever
    drives it. All state lives in `store`.
    """

    def __init__(
        self,
        client: SpotifyAPIClient,
        cache: SnapshotCache,
        config: ExportConfig | None = None,
    ):
        page_size = config.page_size if config else 10
        market = config.market if config else "US"

        self.store = StateStore()
        self.cache = cache
        self.playlists = PlaylistLoader(self.store, client, cache, page_size)
        self.albums = AlbumLoader(self.store, client, cache, page_size)
        self.tracks = TrackLoader(self.store, client, cache, page_size)
        self.artists = ArtistLoader(self.store, client, cache, page_size)
        self.pipeline = ExportPipeline(self.store, client, market)

    @property
    def state(self) -> ExportState:
        return self.store.get()

    @property
    def loaders(self) -> dict[ResourceKind, ResourceLoader]:
        return {
            ResourceKind.PLAYLISTS: self.playlists,
            ResourceKind.ALBUMS: self.albums,
            ResourceKind.TRACKS: self.tracks,
            ResourceKind.ARTISTS: self.artists,
        }

    def loader(self, kind: ResourceKind) -> ResourceLoader:
        return self.loaders[kind]

    @property
    def has_cached_data(self) -> bool:
        return self.state.has_items

    def restore_from_cache(self) -> bool:
        """
        Installs the stored snapshot, if it holds anything. Every restored
        collection is treated as fully loaded.
        """
        snapshot = self.cache.load()
        if snapshot is None or snapshot.is_empty:
            return False

        def apply(state: ExportState) -> ExportState:
            for kind in ResourceKind:
                fresh = initial_resource_state(kind)
                state = state.with_resource(
                    kind,
                    replace(
                        fresh,
                        items=tuple(snapshot.items(kind)),
                        pagination=replace(
                            fresh.pagination,
                            total_items=snapshot.total(kind),
                            has_more_to_load=False,
                        ),
                    ),
                )
            return replace(state, phase=ExportPhase.SELECTING)

        self.store.update(apply)
        log.debug(f"Restored library snapshot cached at {snapshot.cached_at}.")
        return True

    async def load_everything(self) -> None:
        """Loads all four collections completely, one after the other."""
        for kind, loader in self.loaders.items():
            log.info(f"Loading {kind.value}...")
            loader.reset()
            await loader.load_all()

    async def start_export(self) -> None:
        await self.pipeline.start()

    def stop(self) -> None:
        self.pipeline.stop()

    def back_to_selection(self) -> None:
        self.store.update(
            lambda s: replace(
                s, phase=ExportPhase.SELECTING, current_playlist=None, error=None
            )
        )

    def reset(self) -> None:
        """Returns to the initial empty state and forgets the stored snapshot."""
        self.pipeline.stop()
        self.store.set(ExportState())
        self.cache.clear()

    async def write_export(self, path: Path) -> Path:
        """
        Writes the completed export document as UTF-8 JSON.

        Raises:
            ExportNotReadyError: If no export has completed in this session.
        """
        state = self.state
        if state.phase is not ExportPhase.COMPLETE or not state.json_output:
            raise ExportNotReadyError("There is no completed export to write.")

        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(state.json_output)
        log.info(f"Export written to [dim]{path}[/dim]")
        return path

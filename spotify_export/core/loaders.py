"""
Incremental loaders for the four library collections.

Playlists, saved albums and saved tracks use offset pagination against the
server's authoritative total. Followed artists use cursor pagination, where
only a missing 'after' cursor signals the end of the collection.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from spotify_export.api.client import SpotifyAPIClient
from spotify_export.models.items import (
    AlbumInfo,
    ArtistInfo,
    LibraryItem,
    PlaylistInfo,
    TrackInfo,
)
from spotify_export.models.state import (
    ExportPhase,
    ExportState,
    PaginationState,
    ResourceKind,
    ResourceState,
    initial_resource_state,
)
from spotify_export.storage.cache import SnapshotCache

from .store import StateStore

log = logging.getLogger(__name__)

ITEMS_PER_PAGE = 10


@dataclass(frozen=True)
class Page:
    """One page of parsed items as returned by the server."""

    items: tuple[LibraryItem, ...]
    total: int
    cursor: str | None = None
    # Entries the server sent, including the ones dropped as unusable
    raw_count: int = 0


class ResourceLoader(ABC):
    """
    Loads one collection page by page into the `StateStore` and manages the
    selection flags of its items.
    """

    kind: ResourceKind

    def __init__(
        self,
        store: StateStore,
        client: SpotifyAPIClient,
        cache: SnapshotCache | None = None,
        page_size: int = ITEMS_PER_PAGE,
    ):
        self._store = store
        self._client = client
        self._cache = cache
        self.page_size = page_size

    @property
    def resource(self) -> ResourceState:
        return self._store.get().resource(self.kind)

    @property
    def max_loaded_page(self) -> int:
        return math.ceil(self.resource.loaded_count / self.page_size)

    def _update(self, fn: Callable[[ResourceState], ResourceState]) -> None:
        self._store.update(lambda s: s.with_resource(self.kind, fn(s.resource(self.kind))))

    def _update_pagination(self, **changes: Any) -> None:
        self._update(lambda r: replace(r, pagination=replace(r.pagination, **changes)))

    # Loading

    def reset(self) -> None:
        """Discards everything loaded so far without fetching."""
        self._store.update(self._on_reset)

    async def load_first(self) -> None:
        """Discards everything loaded so far and fetches the first page."""
        self._store.update(self._on_reset)
        self._update(lambda r: replace(r, loading=True))
        await self._load_page()

    async def load_next(self) -> None:
        """Fetches exactly one more page, unless loading or exhausted."""
        resource = self.resource
        if resource.loading or not resource.pagination.has_more_to_load:
            return

        self._update(lambda r: replace(r, loading=True))
        await self._load_page()

    async def load_all(self) -> None:
        """
        Fetches pages until the collection is exhausted, then stores a
        snapshot. Does nothing while another `load_all` runs or once the
        collection is exhausted.
        """
        pagination = self.resource.pagination
        if pagination.loading_all or not pagination.has_more_to_load:
            return

        self._update_pagination(loading_all=True)
        completed = True
        try:
            while self.resource.pagination.has_more_to_load:
                self._update(lambda r: replace(r, loading=True))
                if not await self._load_page():
                    completed = False
                    break
        finally:
            self._update_pagination(loading_all=False)

        if not completed:
            log.warning(
                f"Stopped loading all {self.kind.value} after "
                f"{self.resource.loaded_count} items; not caching a partial load."
            )
            return

        log.debug(f"Loaded all {self.resource.loaded_count} {self.kind.value}.")
        if self._cache is not None:
            self._cache.save_resource(self.kind, self.resource)

    async def set_page(self, page: int) -> None:
        """
        Moves the visible window to `page`, loading forward first when the
        window lies beyond what has been loaded.
        """
        while page > self.max_loaded_page and self.resource.pagination.has_more_to_load:
            pagination_before = self.resource.pagination
            await self.load_next()
            if self.resource.pagination == pagination_before:
                break

        total_pages = math.ceil(self.resource.pagination.total_items / self.page_size)
        self._update_pagination(current_page=max(1, min(page, total_pages)))

    def page_items(self) -> tuple[LibraryItem, ...]:
        """The items inside the current page window."""
        resource = self.resource
        start = (resource.pagination.current_page - 1) * self.page_size
        return resource.items[start : start + self.page_size]

    async def _load_page(self) -> bool:
        """
        Fetches one page and installs it. A failed fetch leaves items and
        pagination untouched and returns False.
        """
        try:
            page = await self._fetch_page(self.resource)
        except Exception as e:
            log.error(f"Failed to load {self.kind.value}: {e}")
            log.debug("Full traceback:", exc_info=True)
            self._store.update(lambda s: self._on_page_failed(s, e))
            return False

        if page is None:
            self._store.update(self._apply_exhausted)
        else:
            self._store.update(lambda s: self._apply_page(s, page))
        return True

    def _apply_page(self, state: ExportState, page: Page) -> ExportState:
        current = state.resource(self.kind)
        items = current.items + page.items
        resource = replace(
            current,
            items=items,
            loading=False,
            pagination=self._advance(current.pagination, len(items), page),
        )
        return self._on_page_settled(state.with_resource(self.kind, resource))

    def _apply_exhausted(self, state: ExportState) -> ExportState:
        current = state.resource(self.kind)
        resource = replace(
            current, loading=False, pagination=self._exhausted(current.pagination)
        )
        return self._on_page_settled(state.with_resource(self.kind, resource))

    # Hooks

    def _on_reset(self, state: ExportState) -> ExportState:
        resource = initial_resource_state(self.kind)
        return replace(state.with_resource(self.kind, resource), error=None)

    def _on_page_settled(self, state: ExportState) -> ExportState:
        return state

    def _on_page_failed(self, state: ExportState, error: Exception) -> ExportState:
        return state.with_resource(
            self.kind, replace(state.resource(self.kind), loading=False)
        )

    def _exhausted(self, pagination: PaginationState) -> PaginationState:
        return replace(pagination, has_more_to_load=False)

    @abstractmethod
    async def _fetch_page(self, resource: ResourceState) -> Page | None:
        """Requests the page following `resource`; None when there is no data."""

    @abstractmethod
    def _advance(
        self, pagination: PaginationState, loaded_count: int, page: Page
    ) -> PaginationState:
        """Computes the pagination state after `page` has been appended."""

    # Selection

    def _set_selected(self, predicate: Callable[[LibraryItem], bool | None]) -> None:
        def apply(resource: ResourceState) -> ResourceState:
            items = []
            for item in resource.items:
                selected = predicate(item)
                if selected is None or selected == item.selected:
                    items.append(item)
                else:
                    items.append(item.with_selected(selected))
            return replace(resource, items=tuple(items))

        self._update(apply)

    def toggle(self, item_id: str) -> None:
        self._set_selected(lambda item: not item.selected if item.id == item_id else None)

    def select_all(self) -> None:
        self._set_selected(lambda item: True)

    def deselect_all(self) -> None:
        self._set_selected(lambda item: False)

    def selected(self) -> tuple[LibraryItem, ...]:
        return self.resource.selected


class OffsetResourceLoader(ResourceLoader):
    """
    Pages with `(limit, offset)` against the server total. The offset follows
    the server's list, so entries dropped as unusable still advance it.
    """

    async def _fetch_page(self, resource: ResourceState) -> Page | None:
        result = await self._request(self.page_size, resource.pagination.next_offset)
        if not result:
            return None

        entries = result.get("items") or []
        return Page(
            items=tuple(self._parse(entry) for entry in entries if self._is_usable(entry)),
            total=result.get("total", 0),
            raw_count=len(entries),
        )

    def _advance(
        self, pagination: PaginationState, loaded_count: int, page: Page
    ) -> PaginationState:
        # An empty page ends the collection even if the total says otherwise
        next_offset = pagination.next_offset + page.raw_count
        return replace(
            pagination,
            total_items=page.total,
            next_offset=next_offset,
            has_more_to_load=page.raw_count > 0 and next_offset < page.total,
        )

    @abstractmethod
    async def _request(self, limit: int, offset: int) -> dict[str, Any] | None: ...

    @abstractmethod
    def _parse(self, entry: dict[str, Any]) -> LibraryItem: ...

    @abstractmethod
    def _is_usable(self, entry: dict[str, Any] | None) -> bool: ...


class PlaylistLoader(OffsetResourceLoader):
    kind = ResourceKind.PLAYLISTS

    async def _request(self, limit: int, offset: int) -> dict[str, Any] | None:
        return await self._client.get_playlists(limit, offset)

    def _parse(self, entry: dict[str, Any]) -> PlaylistInfo:
        return PlaylistInfo.from_api(entry)

    def _is_usable(self, entry: dict[str, Any] | None) -> bool:
        return bool(entry and entry.get("id"))

    def _on_reset(self, state: ExportState) -> ExportState:
        return replace(super()._on_reset(state), phase=ExportPhase.LOADING_PLAYLISTS)

    def _on_page_settled(self, state: ExportState) -> ExportState:
        return replace(state, phase=ExportPhase.SELECTING)

    def _on_page_failed(self, state: ExportState, error: Exception) -> ExportState:
        return replace(
            super()._on_page_failed(state, error),
            phase=ExportPhase.ERROR,
            error=str(error) or "Failed to load playlists",
        )


class AlbumLoader(OffsetResourceLoader):
    kind = ResourceKind.ALBUMS

    async def _request(self, limit: int, offset: int) -> dict[str, Any] | None:
        return await self._client.get_saved_albums(limit, offset)

    def _parse(self, entry: dict[str, Any]) -> AlbumInfo:
        return AlbumInfo.from_api(entry)

    def _is_usable(self, entry: dict[str, Any] | None) -> bool:
        return bool(entry and (entry.get("album") or {}).get("id"))


class TrackLoader(OffsetResourceLoader):
    kind = ResourceKind.TRACKS

    async def _request(self, limit: int, offset: int) -> dict[str, Any] | None:
        return await self._client.get_saved_tracks(limit, offset)

    def _parse(self, entry: dict[str, Any]) -> TrackInfo:
        return TrackInfo.from_api(entry)

    def _is_usable(self, entry: dict[str, Any] | None) -> bool:
        # Local files and unavailable tracks come back without an id
        return bool(entry and (entry.get("track") or {}).get("id"))


class ArtistLoader(ResourceLoader):
    """Pages with `(limit, after=cursor)`; the total is informational only."""

    kind = ResourceKind.ARTISTS

    async def _fetch_page(self, resource: ResourceState) -> Page | None:
        result = await self._client.get_followed_artists(
            self.page_size, after=resource.pagination.cursor
        )
        if not result or not result.get("artists"):
            return None

        artists = result["artists"]
        return Page(
            items=tuple(
                ArtistInfo.from_api(artist)
                for artist in artists.get("items") or []
                if artist and artist.get("id")
            ),
            total=artists.get("total", 0),
            cursor=(artists.get("cursors") or {}).get("after"),
        )

    def _advance(
        self, pagination: PaginationState, loaded_count: int, page: Page
    ) -> PaginationState:
        return replace(
            pagination,
            total_items=page.total,
            has_more_to_load=page.cursor is not None,
            cursor=page.cursor,
        )

    def _exhausted(self, pagination: PaginationState) -> PaginationState:
        return replace(pagination, has_more_to_load=False, cursor=None)

"""Unit tests for the incremental collection loaders."""

import asyncio

import pytest

from spotify_export.core.loaders import (
    AlbumLoader,
    ArtistLoader,
    PlaylistLoader,
    TrackLoader,
)
from spotify_export.core.store import StateStore
from spotify_export.models.state import ExportPhase, ResourceKind

from .fakes import (
    FakeCatalogClient,
    make_album,
    make_artist,
    make_playlist,
    make_track,
)


def playlists(count: int) -> list[dict]:
    return [make_playlist(f"p{i}") for i in range(count)]


class TestOffsetPagination:
    """Tests for playlists, saved albums and saved tracks."""

    @pytest.mark.asyncio
    async def test_pages_follow_the_server_total(self, store: StateStore) -> None:
        """25 playlists in pages of 10 load as 10, 10, 5."""
        client = FakeCatalogClient(playlists=playlists(25))
        loader = PlaylistLoader(store, client, page_size=10)

        has_more = []
        await loader.load_first()
        has_more.append(loader.resource.pagination.has_more_to_load)
        await loader.load_next()
        has_more.append(loader.resource.pagination.has_more_to_load)
        await loader.load_next()
        has_more.append(loader.resource.pagination.has_more_to_load)

        assert client.calls_to("get_playlists") == [(10, 0), (10, 10), (10, 20)]
        assert has_more == [True, True, False]
        assert loader.resource.loaded_count == 25
        assert loader.resource.pagination.total_items == 25

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_loads", [1, 2, 3, 4, 5, 6])
    async def test_loaded_count_is_capped_by_total(
        self, store: StateStore, page_loads: int
    ) -> None:
        """After N page loads of size P against total T, min(N*P, T) items are loaded."""
        saved = [make_track(f"s{i}") for i in range(23)]
        loader = TrackLoader(store, FakeCatalogClient(saved_tracks=saved), page_size=5)

        await loader.load_first()
        for _ in range(page_loads - 1):
            await loader.load_next()

        expected = min(page_loads * 5, 23)
        assert loader.resource.loaded_count == expected
        assert loader.resource.pagination.has_more_to_load is (expected < 23)

    @pytest.mark.asyncio
    async def test_items_without_id_are_dropped(self, store: StateStore) -> None:
        """Local files come back without an id and never become items."""
        local_file = make_track("local")
        local_file["id"] = None
        client = FakeCatalogClient(saved_tracks=[make_track("s1"), local_file])
        loader = TrackLoader(store, client, page_size=10)

        await loader.load_first()

        assert [item.id for item in loader.resource.items] == ["s1"]
        assert loader.resource.pagination.total_items == 2

    @pytest.mark.asyncio
    async def test_dropped_entry_still_advances_the_offset(self, store: StateStore) -> None:
        """An unusable entry inside a page does not shift the next request."""
        local_file = make_track("local")
        local_file["id"] = None
        saved = [make_track("s1"), local_file] + [make_track(f"s{i}") for i in range(2, 12)]
        client = FakeCatalogClient(saved_tracks=saved)
        loader = TrackLoader(store, client, page_size=10)

        await loader.load_all()

        ids = [item.id for item in loader.resource.items]
        assert ids == ["s1"] + [f"s{i}" for i in range(2, 12)]
        assert client.calls_to("get_saved_tracks") == [(10, 0), (10, 10)]
        assert loader.resource.pagination.next_offset == 12
        assert loader.resource.pagination.has_more_to_load is False

    @pytest.mark.asyncio
    async def test_page_of_unusable_entries_keeps_loading(self, store: StateStore) -> None:
        """Only an empty server page ends the collection early."""
        unusable = [make_track(f"x{i}") for i in range(2)]
        for entry in unusable:
            entry["id"] = None
        client = FakeCatalogClient(saved_tracks=unusable + [make_track("s1")])
        loader = TrackLoader(store, client, page_size=2)

        await loader.load_first()
        assert loader.resource.items == ()
        assert loader.resource.pagination.has_more_to_load is True

        await loader.load_next()
        assert [item.id for item in loader.resource.items] == ["s1"]
        assert loader.resource.pagination.has_more_to_load is False

    @pytest.mark.asyncio
    async def test_empty_page_ends_loading(self, store: StateStore) -> None:
        """A page without items stops loading even if the total claims more."""
        client = FakeCatalogClient(playlists=playlists(5))
        client.totals["playlists"] = 30
        loader = PlaylistLoader(store, client, page_size=10)

        await loader.load_first()
        assert loader.resource.pagination.has_more_to_load is True

        await loader.load_next()
        assert loader.resource.pagination.has_more_to_load is False
        assert loader.resource.loaded_count == 5

    @pytest.mark.asyncio
    async def test_no_data_marks_collection_exhausted(self, store: StateStore) -> None:
        """A None response is treated as the end of the collection."""
        client = FakeCatalogClient(albums=[make_album("al1", ["a1"])])
        client.none_results.add("get_saved_albums")
        loader = AlbumLoader(store, client, page_size=10)

        await loader.load_first()

        resource = loader.resource
        assert resource.items == ()
        assert resource.loading is False
        assert resource.pagination.has_more_to_load is False

    @pytest.mark.asyncio
    async def test_load_next_is_a_noop_once_exhausted(self, store: StateStore) -> None:
        client = FakeCatalogClient(playlists=playlists(3))
        loader = PlaylistLoader(store, client, page_size=10)
        await loader.load_first()

        await loader.load_next()

        assert len(client.calls_to("get_playlists")) == 1


class TestCursorPagination:
    """Tests for followed artists."""

    @pytest.mark.asyncio
    async def test_null_cursor_ends_loading_regardless_of_total(
        self, store: StateStore
    ) -> None:
        """The reported total does not decide when loading stops."""
        client = FakeCatalogClient(artists=[make_artist(f"ar{i}") for i in range(3)])
        client.totals["artists"] = 100
        loader = ArtistLoader(store, client, page_size=2)

        await loader.load_first()
        assert loader.resource.pagination.has_more_to_load is True
        assert loader.resource.pagination.cursor == "2"

        await loader.load_next()
        pagination = loader.resource.pagination
        assert pagination.has_more_to_load is False
        assert pagination.cursor is None
        assert pagination.total_items == 100
        assert client.calls_to("get_followed_artists") == [(2, None), (2, "2")]

    @pytest.mark.asyncio
    async def test_cursor_keeps_loading_past_reported_total(
        self, store: StateStore
    ) -> None:
        client = FakeCatalogClient(artists=[make_artist(f"ar{i}") for i in range(4)])
        client.totals["artists"] = 1
        loader = ArtistLoader(store, client, page_size=2)

        await loader.load_first()

        assert loader.resource.loaded_count == 2
        assert loader.resource.pagination.has_more_to_load is True

    @pytest.mark.asyncio
    async def test_missing_artists_object_is_exhaustion(self, store: StateStore) -> None:
        client = FakeCatalogClient(artists=[make_artist("ar1")])
        client.none_results.add("get_followed_artists")
        loader = ArtistLoader(store, client, page_size=2)

        await loader.load_first()

        assert loader.resource.pagination.has_more_to_load is False
        assert loader.resource.pagination.cursor is None


class TestLoadAll:
    """Tests for loading a whole collection."""

    @pytest.mark.asyncio
    async def test_loads_every_page_and_caches(self, store: StateStore, cache) -> None:
        client = FakeCatalogClient(playlists=playlists(25))
        loader = PlaylistLoader(store, client, cache, page_size=10)

        await loader.load_all()

        assert loader.resource.loaded_count == 25
        assert loader.resource.pagination.loading_all is False
        snapshot = cache.load()
        assert snapshot is not None
        assert len(snapshot.playlists) == 25
        assert snapshot.playlists_total == 25

    @pytest.mark.asyncio
    async def test_concurrent_call_is_ignored(self, store: StateStore) -> None:
        """A second call while one is running fetches nothing."""
        client = FakeCatalogClient(playlists=playlists(25))
        loader = PlaylistLoader(store, client, page_size=10)

        await asyncio.gather(loader.load_all(), loader.load_all())

        assert client.calls_to("get_playlists") == [(10, 0), (10, 10), (10, 20)]
        assert loader.resource.loaded_count == 25
        assert loader.resource.pagination.loading_all is False

    @pytest.mark.asyncio
    async def test_after_exhaustion_makes_no_calls(self, store: StateStore) -> None:
        """Calling it again on an exhausted collection changes nothing."""
        client = FakeCatalogClient(playlists=playlists(12))
        loader = PlaylistLoader(store, client, page_size=10)
        await loader.load_all()
        calls_before = len(client.calls)
        state_before = store.get()

        await loader.load_all()

        assert len(client.calls) == calls_before
        assert store.get() is state_before

    @pytest.mark.asyncio
    async def test_failure_stops_without_caching(self, store: StateStore, cache) -> None:
        client = FakeCatalogClient(saved_tracks=[make_track(f"s{i}") for i in range(15)])
        loader = TrackLoader(store, client, cache, page_size=10)
        await loader.load_first()
        client.failures["get_saved_tracks"] = RuntimeError("connection reset")

        await loader.load_all()

        resource = loader.resource
        assert resource.loaded_count == 10
        assert resource.loading is False
        assert resource.pagination.loading_all is False
        assert resource.pagination.has_more_to_load is True
        assert cache.load() is None

    @pytest.mark.asyncio
    async def test_artists_load_until_cursor_runs_out(self, store: StateStore) -> None:
        client = FakeCatalogClient(artists=[make_artist(f"ar{i}") for i in range(5)])
        loader = ArtistLoader(store, client, page_size=2)

        await loader.load_all()

        assert [item.id for item in loader.resource.items] == [
            "ar0",
            "ar1",
            "ar2",
            "ar3",
            "ar4",
        ]
        assert len(client.calls_to("get_followed_artists")) == 3


class TestFailures:
    """A failed page fetch is absorbed by the loader."""

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_items_and_pagination(
        self, store: StateStore
    ) -> None:
        client = FakeCatalogClient(albums=[make_album(f"al{i}", []) for i in range(15)])
        loader = AlbumLoader(store, client, page_size=10)
        await loader.load_first()
        pagination_before = loader.resource.pagination
        client.failures["get_saved_albums"] = RuntimeError("503")

        await loader.load_next()

        assert loader.resource.loaded_count == 10
        assert loader.resource.loading is False
        assert loader.resource.pagination == pagination_before
        assert store.get().phase is ExportPhase.IDLE

    @pytest.mark.asyncio
    async def test_failed_playlist_load_sets_error_phase(self, store: StateStore) -> None:
        client = FakeCatalogClient(playlists=playlists(3))
        client.failures["get_playlists"] = RuntimeError("Failed to fetch playlists")
        loader = PlaylistLoader(store, client, page_size=10)

        await loader.load_first()

        state = store.get()
        assert state.phase is ExportPhase.ERROR
        assert state.error == "Failed to fetch playlists"
        assert state.playlists.loading is False

    @pytest.mark.asyncio
    async def test_playlist_phase_moves_to_selecting(self, store: StateStore) -> None:
        seen = []
        store.subscribe(lambda s: seen.append(s.phase))
        loader = PlaylistLoader(store, FakeCatalogClient(playlists=playlists(1)))

        await loader.load_first()

        assert seen[0] is ExportPhase.LOADING_PLAYLISTS
        assert seen[-1] is ExportPhase.SELECTING


class TestPaging:
    """Tests for the visible page window."""

    @pytest.mark.asyncio
    async def test_set_page_loads_forward(self, store: StateStore) -> None:
        client = FakeCatalogClient(playlists=playlists(25))
        loader = PlaylistLoader(store, client, page_size=10)
        await loader.load_first()

        await loader.set_page(3)

        assert loader.resource.pagination.current_page == 3
        assert loader.resource.loaded_count == 25
        assert [item.id for item in loader.page_items()] == [f"p{i}" for i in range(20, 25)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("requested", "expected"), [(9, 3), (0, 1), (-2, 1)])
    async def test_set_page_clamps(
        self, store: StateStore, requested: int, expected: int
    ) -> None:
        loader = PlaylistLoader(store, FakeCatalogClient(playlists=playlists(25)))
        await loader.load_all()

        await loader.set_page(requested)

        assert loader.resource.pagination.current_page == expected


class TestSelection:
    """Tests for toggling selection flags."""

    @pytest.mark.asyncio
    async def test_items_start_selected(self, store: StateStore) -> None:
        loader = PlaylistLoader(store, FakeCatalogClient(playlists=playlists(3)))
        await loader.load_first()

        assert len(loader.selected()) == 3

    @pytest.mark.asyncio
    async def test_toggle_changes_only_that_item(self, store: StateStore) -> None:
        loader = PlaylistLoader(store, FakeCatalogClient(playlists=playlists(3)))
        await loader.load_first()
        before = loader.resource

        loader.toggle("p1")

        after = loader.resource
        assert [item.selected for item in after.items] == [True, False, True]
        assert after.items[0] is before.items[0]
        assert after.items[2] is before.items[2]
        assert after.pagination == before.pagination

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_selection(self, store: StateStore) -> None:
        loader = PlaylistLoader(store, FakeCatalogClient(playlists=playlists(2)))
        await loader.load_first()

        loader.toggle("p0")
        loader.toggle("p0")

        assert all(item.selected for item in loader.resource.items)

    @pytest.mark.asyncio
    async def test_select_and_deselect_all(self, store: StateStore) -> None:
        loader = AlbumLoader(
            store, FakeCatalogClient(albums=[make_album(f"al{i}", []) for i in range(4)])
        )
        await loader.load_first()

        loader.deselect_all()
        assert loader.selected() == ()
        assert store.get().resource(ResourceKind.ALBUMS).loaded_count == 4

        loader.select_all()
        assert len(loader.selected()) == 4

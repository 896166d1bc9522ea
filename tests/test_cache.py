"""Unit tests for the snapshot cache."""

import json
from pathlib import Path

from spotify_export.models.items import PlaylistInfo, TrackInfo
from spotify_export.models.state import PaginationState, ResourceKind, ResourceState
from spotify_export.storage.cache import STORAGE_KEY, CacheSnapshot, SnapshotCache


def playlist_resource(count: int, total: int | None = None) -> ResourceState:
    items = tuple(PlaylistInfo(id=f"p{i}", name=f"Playlist {i}") for i in range(count))
    return ResourceState(
        items=items,
        pagination=PaginationState(
            total_items=count if total is None else total, has_more_to_load=False
        ),
    )


class TestSnapshotCache:
    """Tests for reading and writing the snapshot file."""

    def test_missing_file_loads_none(self, tmp_path: Path) -> None:
        assert SnapshotCache(tmp_path).load() is None

    def test_save_and_load(self, tmp_path: Path) -> None:
        cache = SnapshotCache(tmp_path)

        assert cache.save_resource(ResourceKind.PLAYLISTS, playlist_resource(3, 4)) is True

        snapshot = cache.load()
        assert snapshot.key == STORAGE_KEY
        assert [p.id for p in snapshot.playlists] == ["p0", "p1", "p2"]
        assert snapshot.playlists_total == 4
        assert snapshot.cached_at > 0
        assert snapshot.is_empty is False

    def test_saving_one_kind_keeps_the_others(self, tmp_path: Path) -> None:
        cache = SnapshotCache(tmp_path)
        cache.save_resource(ResourceKind.PLAYLISTS, playlist_resource(2))
        tracks = ResourceState(
            items=(TrackInfo(id="s1", name="Song", artist="A", album="B"),),
            pagination=PaginationState(total_items=1, has_more_to_load=False),
        )

        cache.save_resource(ResourceKind.TRACKS, tracks)

        snapshot = cache.load()
        assert [p.id for p in snapshot.playlists] == ["p0", "p1"]
        assert snapshot.tracks[0].artist == "A"
        assert snapshot.total(ResourceKind.TRACKS) == 1

    def test_selection_flags_are_kept(self, tmp_path: Path) -> None:
        cache = SnapshotCache(tmp_path)
        resource = playlist_resource(2)
        resource = ResourceState(
            items=(resource.items[0].with_selected(False), resource.items[1]),
            pagination=resource.pagination,
        )

        cache.save_resource(ResourceKind.PLAYLISTS, resource)

        assert [p.selected for p in cache.load().playlists] == [False, True]

    def test_total_falls_back_to_item_count(self) -> None:
        snapshot = CacheSnapshot(playlists=[PlaylistInfo(id="p0", name="x")])

        assert snapshot.total(ResourceKind.PLAYLISTS) == 1
        assert snapshot.total(ResourceKind.ALBUMS) == 0

    def test_corrupt_file_loads_none(self, tmp_path: Path) -> None:
        cache = SnapshotCache(tmp_path)
        cache.cache_path.write_text("{not json", encoding="utf-8")

        assert cache.load() is None

    def test_malformed_snapshot_loads_none(self, tmp_path: Path) -> None:
        cache = SnapshotCache(tmp_path)
        cache.cache_path.write_text(
            json.dumps({"key": STORAGE_KEY, "playlists": [{"name": "no id"}]}),
            encoding="utf-8",
        )

        assert cache.load() is None

    def test_unknown_key_loads_none(self, tmp_path: Path) -> None:
        cache = SnapshotCache(tmp_path)
        cache.cache_path.write_text(json.dumps({"key": "something-else"}), encoding="utf-8")

        assert cache.load() is None

    def test_clear(self, tmp_path: Path) -> None:
        cache = SnapshotCache(tmp_path)
        cache.save_resource(ResourceKind.PLAYLISTS, playlist_resource(1))

        assert cache.clear() is True
        assert cache.load() is None
        assert cache.clear() is True

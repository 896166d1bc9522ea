"""Shared fixtures for the test suite."""

from pathlib import Path

import pytest

from spotify_export.core.store import StateStore
from spotify_export.storage.cache import SnapshotCache

from .fakes import FakeCatalogClient, make_album, make_artist, make_playlist, make_track


@pytest.fixture
def store() -> StateStore:
    return StateStore()


@pytest.fixture
def cache(tmp_path: Path) -> SnapshotCache:
    return SnapshotCache(tmp_path / "cache")


@pytest.fixture
def library() -> FakeCatalogClient:
    """A small library with something in every collection."""
    playlist_tracks = {
        "p1": [make_track("t1"), make_track("t2")],
        "p2": [make_track("t3"), make_track("t4")],
    }
    return FakeCatalogClient(
        playlists=[make_playlist("p1", 2), make_playlist("p2", 2)],
        albums=[make_album("al1", ["a1", "a2"])],
        saved_tracks=[make_track("s1")],
        artists=[make_artist("ar1")],
        playlist_tracks=playlist_tracks,
        top_tracks={"ar1": [make_track("top1")]},
    )

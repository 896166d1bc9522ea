"""Unit tests for payload helpers and formatting."""

import pytest

from spotify_export.utils.formatting import (
    chunked,
    external_id,
    first_image_url,
    format_duration,
    join_artist_names,
)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0s"), (59, "59s"), (60, "1m"), (3725, "1h 2m 5s"), (7200, "2h")],
)
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


def test_join_artist_names() -> None:
    assert join_artist_names([{"name": "A"}, {"name": "B"}]) == "A, B"
    assert join_artist_names(None) == ""
    assert join_artist_names([None, {"name": "C"}]) == "C"


def test_first_image_url() -> None:
    assert first_image_url([{"url": "https://a"}, {"url": "https://b"}]) == "https://a"
    assert first_image_url([]) is None
    assert first_image_url(None) is None


def test_external_id() -> None:
    assert external_id({"external_ids": {"isrc": "USABC"}}, "isrc") == "USABC"
    assert external_id({"external_ids": {}}, "upc") is None
    assert external_id({}, "isrc") is None


def test_chunked() -> None:
    ids = [str(i) for i in range(120)]

    chunks = chunked(ids, 50)

    assert [len(c) for c in chunks] == [50, 50, 20]
    assert sum(chunks, []) == ids
    assert chunked([], 50) == []

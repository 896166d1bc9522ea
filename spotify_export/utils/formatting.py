"""
Helper functions for flattening Spotify payloads and formatting data into
human-readable strings.
"""

from typing import Any


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 34m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def join_artist_names(artists: list[dict[str, Any]] | None) -> str:
    """Joins the names of a Spotify artist list into 'A, B, C'."""
    return ", ".join(a.get("name", "") for a in artists or [] if a)


def first_image_url(images: list[dict[str, Any]] | None) -> str | None:
    """Returns the URL of the first image, or None when there is none."""
    if images and (url := images[0].get("url")):
        return url
    return None


def external_id(payload: dict[str, Any], key: str) -> str | None:
    """Reads a cross-catalog code (isrc, upc, ean) from 'external_ids'."""
    return (payload.get("external_ids") or {}).get(key) or None


def chunked(values: list[str], size: int) -> list[list[str]]:
    """Splits a list into consecutive chunks of at most `size` elements."""
    return [values[i : i + size] for i in range(0, len(values), size)]

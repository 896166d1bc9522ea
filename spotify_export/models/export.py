"""
Pydantic models for the exported JSON document.

Every nested track carries the same field set regardless of whether it came
from a playlist, an album, the saved tracks or an artist's top tracks.
"""

from typing import Any

from pydantic import BaseModel, Field

from spotify_export.utils.formatting import (
    external_id,
    first_image_url,
    join_artist_names,
)


class ExportedTrack(BaseModel):
    spotify_id: str
    name: str
    artist: str
    album: str
    album_id: str
    track_number: int
    disc_number: int
    duration_ms: int
    isrc: str | None = None
    cover_image_url: str | None = None
    spotify_uri: str

    @classmethod
    def from_api(
        cls, track: dict[str, Any], album: dict[str, Any] | None = None
    ) -> "ExportedTrack":
        """
        Denormalizes a full track object.

        Args:
            track: A full track from a batched detail lookup.
            album: Overrides the track's embedded album (used when exporting
                an album, so every track points at the same album record).
        """
        album = album or track.get("album") or {}
        return cls(
            spotify_id=track["id"],
            name=track.get("name", ""),
            artist=join_artist_names(track.get("artists")),
            album=album.get("name", ""),
            album_id=album.get("id", ""),
            track_number=track.get("track_number", 0),
            disc_number=track.get("disc_number", 0),
            duration_ms=track.get("duration_ms", 0),
            isrc=external_id(track, "isrc"),
            cover_image_url=first_image_url(album.get("images")),
            spotify_uri=track.get("uri", ""),
        )


class ExportedPlaylist(BaseModel):
    spotify_id: str
    name: str
    description: str
    cover_image_url: str | None = None
    tracks: list[ExportedTrack] = Field(default_factory=list)


class ExportedAlbum(BaseModel):
    spotify_id: str
    name: str
    artist: str
    release_date: str
    album_type: str
    total_tracks: int
    upc: str | None = None
    cover_image_url: str | None = None
    tracks: list[ExportedTrack] = Field(default_factory=list)

    @classmethod
    def from_api(cls, album: dict[str, Any]) -> "ExportedAlbum":
        """Builds the album record (without tracks) from a full album object."""
        return cls(
            spotify_id=album["id"],
            name=album.get("name", ""),
            artist=join_artist_names(album.get("artists")),
            release_date=album.get("release_date", ""),
            album_type=album.get("album_type", ""),
            total_tracks=album.get("total_tracks", 0),
            upc=external_id(album, "upc"),
            cover_image_url=first_image_url(album.get("images")),
        )


class ExportedArtist(BaseModel):
    spotify_id: str
    name: str
    genres: list[str] = Field(default_factory=list)
    cover_image_url: str | None = None
    top_tracks: list[ExportedTrack] = Field(default_factory=list)


class ExportedData(BaseModel):
    """The complete export document."""

    exported_at: str
    playlists: list[ExportedPlaylist] = Field(default_factory=list)
    albums: list[ExportedAlbum] = Field(default_factory=list)
    tracks: list[ExportedTrack] = Field(default_factory=list)
    artists: list[ExportedArtist] = Field(default_factory=list)

    def to_json(self) -> str:
        """Pretty-printed JSON, non-ASCII characters kept as-is."""
        return self.model_dump_json(indent=2)

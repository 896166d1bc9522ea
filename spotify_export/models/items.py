"""
Pydantic models for the selectable library items shown to the user.

Items are immutable; a selection change produces a new item.
"""

from typing import Any

from pydantic import BaseModel, Field

from spotify_export.utils.formatting import first_image_url, join_artist_names


class LibraryItem(BaseModel):
    """Common fields of every selectable item."""

    id: str
    name: str
    cover_image: str | None = None
    selected: bool = True

    class Config:
        """Pydantic model configuration."""

        frozen = True

    def with_selected(self, selected: bool) -> "LibraryItem":
        return self.model_copy(update={"selected": selected})


class PlaylistInfo(LibraryItem):
    description: str = ""
    track_count: int = 0

    @classmethod
    def from_api(cls, playlist: dict[str, Any]) -> "PlaylistInfo":
        """Builds an item from a '/me/playlists' entry."""
        return cls(
            id=playlist["id"],
            name=playlist.get("name", ""),
            description=playlist.get("description") or "",
            cover_image=first_image_url(playlist.get("images")),
            track_count=(playlist.get("tracks") or {}).get("total", 0),
        )


class AlbumInfo(LibraryItem):
    artist: str = ""
    track_count: int = 0

    @classmethod
    def from_api(cls, saved: dict[str, Any]) -> "AlbumInfo":
        """Builds an item from a '/me/albums' entry ({added_at, album})."""
        album = saved["album"]
        return cls(
            id=album["id"],
            name=album.get("name", ""),
            artist=join_artist_names(album.get("artists")),
            cover_image=first_image_url(album.get("images")),
            track_count=album.get("total_tracks", 0),
        )


class TrackInfo(LibraryItem):
    artist: str = ""
    album: str = ""

    @classmethod
    def from_api(cls, saved: dict[str, Any]) -> "TrackInfo":
        """Builds an item from a '/me/tracks' entry ({added_at, track})."""
        track = saved["track"]
        album = track.get("album") or {}
        return cls(
            id=track["id"],
            name=track.get("name", ""),
            artist=join_artist_names(track.get("artists")),
            album=album.get("name", ""),
            cover_image=first_image_url(album.get("images")),
        )


class ArtistInfo(LibraryItem):
    genres: list[str] = Field(default_factory=list)

    @classmethod
    def from_api(cls, artist: dict[str, Any]) -> "ArtistInfo":
        """Builds an item from a followed-artist entry."""
        return cls(
            id=artist["id"],
            name=artist.get("name", ""),
            cover_image=first_image_url(artist.get("images")),
            genres=list(artist.get("genres") or []),
        )

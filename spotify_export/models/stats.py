"""
Progress counters for an export run.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExportStats:
    """Running totals across the whole export run. Reset when a run starts."""

    tracks_processed: int = 0
    albums_processed: int = 0
    artists_processed: int = 0

    def add(
        self, tracks: int = 0, albums: int = 0, artists: int = 0
    ) -> "ExportStats":
        return ExportStats(
            tracks_processed=self.tracks_processed + tracks,
            albums_processed=self.albums_processed + albums,
            artists_processed=self.artists_processed + artists,
        )


@dataclass(frozen=True)
class PlaylistExportProgress:
    """Progress of the playlist currently being exported."""

    playlist_id: str
    playlist_name: str
    total_tracks: int
    processed_tracks: int = 0

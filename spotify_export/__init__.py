"""Export Spotify playlists, saved albums, saved tracks and followed artists."""

__version__ = "1.0.0"

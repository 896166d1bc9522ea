"""
The export pipeline: resolves full details for every selected item and
assembles the export document.

Processing is strictly sequential: playlists, then albums, then tracks, then
artists, each in selection order. Progress is written to the `StateStore`
after every resolved track.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import replace
from datetime import datetime, timezone

from spotify_export.api.client import TRACKS_BATCH_LIMIT, SpotifyAPIClient
from spotify_export.models.export import (
    ExportedAlbum,
    ExportedArtist,
    ExportedData,
    ExportedPlaylist,
    ExportedTrack,
)
from spotify_export.models.items import AlbumInfo, ArtistInfo, PlaylistInfo, TrackInfo
from spotify_export.models.state import ExportPhase, ExportState
from spotify_export.models.stats import ExportStats, PlaylistExportProgress
from spotify_export.utils.formatting import chunked

from .cancellation import CancellationToken, ExportCancelled
from .store import StateStore

log = logging.getLogger(__name__)

PLAYLIST_TRACKS_BATCH_SIZE = 50
NO_SELECTION_MESSAGE = "No items selected for export"


def _timestamp() -> str:
    """UTC time in ISO-8601 with millisecond precision, e.g. '2024-05-01T10:00:00.000Z'."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ExportPipeline:
    """
    Runs one export at a time. A run either completes and produces exactly
    one `ExportedData`, is stopped and produces nothing, or fails and
    produces nothing.
    """

    def __init__(self, store: StateStore, client: SpotifyAPIClient, market: str = "US"):
        self._store = store
        self._client = client
        self._market = market
        self._token = CancellationToken()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Exports every selected item. Returns when the run has ended."""
        if self.is_running:
            return

        state = self._store.get()
        playlists: tuple[PlaylistInfo, ...] = state.playlists.selected
        albums: tuple[AlbumInfo, ...] = state.albums.selected
        tracks: tuple[TrackInfo, ...] = state.tracks.selected
        artists: tuple[ArtistInfo, ...] = state.artists.selected

        if not state.has_selection:
            log.warning(NO_SELECTION_MESSAGE)
            self._store.update(
                lambda s: replace(s, phase=ExportPhase.ERROR, error=NO_SELECTION_MESSAGE)
            )
            return

        self._running = True
        try:
            await self._run(playlists, albums, tracks, artists)
        finally:
            self._running = False

    async def _run(
        self,
        playlists: tuple[PlaylistInfo, ...],
        albums: tuple[AlbumInfo, ...],
        tracks: tuple[TrackInfo, ...],
        artists: tuple[ArtistInfo, ...],
    ) -> None:
        self._token.reset()
        self._store.update(
            lambda s: replace(
                s,
                phase=ExportPhase.EXPORTING,
                total_playlists_to_export=len(playlists),
                playlists_exported=0,
                current_playlist=None,
                total_stats=ExportStats(),
                exported_data=None,
                json_output="",
                error=None,
            )
        )
        log.info(
            f"Exporting {len(playlists)} playlists, {len(albums)} albums, "
            f"{len(tracks)} tracks and {len(artists)} artists."
        )

        exported_data = ExportedData(exported_at=_timestamp())
        try:
            for index, playlist in enumerate(playlists, start=1):
                self._checkpoint()
                exported_data.playlists.append(await self._export_playlist(playlist))
                self._store.update(lambda s, i=index: replace(s, playlists_exported=i))

            for album in albums:
                self._checkpoint()
                if exported_album := await self._export_album(album):
                    exported_data.albums.append(exported_album)

            exported_data.tracks.extend(await self._export_tracks(tracks))

            for artist in artists:
                self._checkpoint()
                exported_data.artists.append(await self._export_artist(artist))

            self._checkpoint()
        except ExportCancelled:
            log.info("Export stopped; discarding partial results.")
            return
        except Exception as e:
            if self._token.cancelled:
                log.debug("Ignoring failure of a stopped export.", exc_info=True)
                return
            log.error(f"[red]Export failed: {e}[/red]", exc_info=True)
            self._store.update(
                lambda s: replace(s, phase=ExportPhase.ERROR, error=str(e) or "Unknown error")
            )
            return

        json_output = exported_data.to_json()
        self._store.update(
            lambda s: replace(
                s,
                phase=ExportPhase.COMPLETE,
                current_playlist=None,
                exported_data=exported_data,
                json_output=json_output,
            )
        )
        log.info("[green]Export complete.[/green]")

    def stop(self) -> None:
        """
        Requests the running export to stop and returns to selection. Requests
        already sent are not aborted; their results are discarded.
        """
        if not self._running or self._token.cancelled:
            return
        self._token.cancel()
        self._store.update(lambda s: replace(s, phase=ExportPhase.SELECTING))

    def _checkpoint(self) -> None:
        self._token.raise_if_cancelled()

    def _count(
        self,
        tracks: int = 0,
        albums: int = 0,
        artists: int = 0,
        playlist_track: bool = False,
    ) -> None:
        def apply(s: ExportState) -> ExportState:
            current = s.current_playlist
            if playlist_track and current is not None:
                current = replace(current, processed_tracks=current.processed_tracks + 1)
            return replace(
                s,
                current_playlist=current,
                total_stats=s.total_stats.add(tracks, albums, artists),
            )

        self._store.update(apply)

    async def _iter_full_tracks(self, track_ids: list[str]) -> AsyncIterator[dict]:
        """Resolves full track objects (with ISRCs) in batches of 50."""
        for batch in chunked(track_ids, TRACKS_BATCH_LIMIT):
            self._checkpoint()
            tracks = await self._client.get_tracks(batch)
            self._checkpoint()
            for track in tracks:
                if track:
                    yield track

    async def _export_playlist(self, playlist: PlaylistInfo) -> ExportedPlaylist:
        self._store.update(
            lambda s: replace(
                s,
                current_playlist=PlaylistExportProgress(
                    playlist_id=playlist.id,
                    playlist_name=playlist.name,
                    total_tracks=playlist.track_count,
                ),
            )
        )
        log.debug(f"Exporting playlist '{playlist.name}' ({playlist.track_count} tracks)")

        exported = ExportedPlaylist(
            spotify_id=playlist.id,
            name=playlist.name,
            description=playlist.description,
            cover_image_url=playlist.cover_image,
        )

        offset = 0
        while True:
            self._checkpoint()
            page = await self._client.get_playlist_tracks(
                playlist.id, PLAYLIST_TRACKS_BATCH_SIZE, offset
            )
            self._checkpoint()

            entries = (page or {}).get("items") or []
            if not entries:
                break

            # Membership entries lack ISRCs; episodes and local files have no track id
            track_ids = [
                track["id"]
                for entry in entries
                if entry
                and (track := entry.get("track"))
                and track.get("id")
                and track.get("type", "track") == "track"
            ]
            async for track in self._iter_full_tracks(track_ids):
                exported.tracks.append(ExportedTrack.from_api(track))
                self._count(tracks=1, playlist_track=True)
                self._checkpoint()

            if len(entries) < PLAYLIST_TRACKS_BATCH_SIZE:
                break
            offset += PLAYLIST_TRACKS_BATCH_SIZE

        return exported

    async def _export_album(self, album: AlbumInfo) -> ExportedAlbum | None:
        full_album = await self._client.get_album(album.id)
        self._checkpoint()
        if not full_album:
            log.warning(f"Album '{album.name}' ({album.id}) could not be fetched; skipped.")
            return None

        track_ids = await self._client.get_album_track_ids(
            full_album, before_request=self._checkpoint
        )
        self._checkpoint()

        exported = ExportedAlbum.from_api(full_album)
        async for track in self._iter_full_tracks(track_ids):
            exported.tracks.append(ExportedTrack.from_api(track, album=full_album))
            self._count(tracks=1)
            self._checkpoint()

        self._count(albums=1)
        return exported

    async def _export_tracks(self, tracks: tuple[TrackInfo, ...]) -> list[ExportedTrack]:
        exported: list[ExportedTrack] = []
        async for track in self._iter_full_tracks([t.id for t in tracks]):
            exported.append(ExportedTrack.from_api(track))
            self._count(tracks=1)
            self._checkpoint()
        return exported

    async def _export_artist(self, artist: ArtistInfo) -> ExportedArtist:
        top_tracks = await self._client.get_artist_top_tracks(artist.id, self._market)
        self._checkpoint()

        exported = ExportedArtist(
            spotify_id=artist.id,
            name=artist.name,
            genres=list(artist.genres),
            cover_image_url=artist.cover_image,
        )
        for track in top_tracks:
            if not track:
                continue
            exported.top_tracks.append(ExportedTrack.from_api(track))
            self._count(tracks=1)
            self._checkpoint()

        self._count(artists=1)
        return exported


"""
Async client for the Spotify Web API.

Every call returns None (or an empty list) when there is no usable token or
Spotify answers with a non-success status. The callers cannot tell those
cases apart from an exhausted collection.
"""

import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from spotify_export.storage.token_store import TokenStore
from spotify_export.utils.formatting import chunked

from .auth import SpotifyAuthenticator
from .rate_limiter import AdaptiveRateLimiter

log = logging.getLogger(__name__)

# Maximum ids accepted by the batched detail endpoints
TRACKS_BATCH_LIMIT = 50
ALBUMS_BATCH_LIMIT = 20


class SpotifyAPIClient:
    """
    Async client for the Spotify Web API (v1).

    Features:
    - Silent token refresh through the authenticator
    - Adaptive rate limiting
    - Connection pooling
    """

    BASE_URL = "https://api.spotify.com/v1"

    def __init__(self, client_id: str, redirect_uri: str, token_store: TokenStore):
        """
        Initializes the API client.

        Args:
            client_id: The Spotify application's client ID.
            redirect_uri: The redirect URI registered for the application.
            token_store: Persistent storage for the OAuth tokens.
        """
        self._session: aiohttp.ClientSession | None = None
        self._rate_limiter = AdaptiveRateLimiter()
        self._authenticator = SpotifyAuthenticator(
            self, client_id, redirect_uri, token_store
        )

    @property
    def authenticator(self) -> SpotifyAuthenticator:
        """Provides access to the authentication helper."""
        return self._authenticator

    async def get_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=10,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"Accept-Encoding": "gzip, deflate"},
                timeout=aiohttp.ClientTimeout(total=60, connect=15, sock_read=30),
            )
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch_api(self, endpoint: str, **params: Any) -> dict[str, Any] | None:
        """
        Makes an authenticated GET request.

        Returns:
            The decoded JSON body, or None when no token is available, on
            '204 No Content' and on any non-success status.

        Raises:
            aiohttp.ClientError: On transport failures.
        """
        token = await self._authenticator.get_access_token()
        if not token:
            log.debug(f"No access token available; skipping {endpoint}")
            return None

        session = await self.get_session()
        await self._rate_limiter.acquire()

        query = {k: v for k, v in params.items() if v is not None}
        async with session.get(
            self.BASE_URL + endpoint,
            params=query,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        ) as r:
            if r.status == 204:
                return None

            if r.status == 429:
                retry_after = r.headers.get("Retry-After")
                await self._rate_limiter.on_429(
                    float(retry_after) if retry_after and retry_after.isdigit() else None
                )

            if r.status >= 400:
                log.error(f"Spotify API error: {r.status} {await r.text()}")
                return None

            return await r.json()

    # Library endpoints
    async def get_playlists(
        self, limit: int = 20, offset: int = 0
    ) -> dict[str, Any] | None:
        return await self.fetch_api("/me/playlists", limit=limit, offset=offset)

    async def get_saved_albums(
        self, limit: int = 20, offset: int = 0
    ) -> dict[str, Any] | None:
        return await self.fetch_api("/me/albums", limit=limit, offset=offset)

    async def get_saved_tracks(
        self, limit: int = 20, offset: int = 0
    ) -> dict[str, Any] | None:
        return await self.fetch_api("/me/tracks", limit=limit, offset=offset)

    async def get_followed_artists(
        self, limit: int = 20, after: str | None = None
    ) -> dict[str, Any] | None:
        return await self.fetch_api(
            "/me/following", type="artist", limit=limit, after=after
        )

    # Catalog endpoints
    async def get_playlist_tracks(
        self, playlist_id: str, limit: int = 100, offset: int = 0
    ) -> dict[str, Any] | None:
        return await self.fetch_api(
            f"/playlists/{playlist_id}/tracks", limit=limit, offset=offset
        )

    async def get_album(self, album_id: str) -> dict[str, Any] | None:
        return await self.fetch_api(f"/albums/{album_id}")

    async def get_album_track_ids(
        self,
        album: dict[str, Any],
        before_request: Callable[[], None] | None = None,
    ) -> list[str]:
        """
        Returns the ordered track ids of a full album object.

        The album payload only embeds the first page of its tracks; the
        remaining pages are read from '/albums/{id}/tracks'.

        Args:
            album: A full album object.
            before_request: Called before each extra page request.
        """
        embedded = album.get("tracks") or {}
        items = list(embedded.get("items") or [])
        total = embedded.get("total", len(items))

        while len(items) < total:
            if before_request:
                before_request()
            page = await self.fetch_api(
                f"/albums/{album['id']}/tracks",
                limit=TRACKS_BATCH_LIMIT,
                offset=len(items),
            )
            if not page or not page.get("items"):
                break
            items.extend(page["items"])

        return [t["id"] for t in items if t and t.get("id")]

    async def get_album_tracks(self, album_id: str) -> list[dict[str, Any]]:
        """
        Gets all tracks of an album with full details.

        The track objects embedded in an album lack 'external_ids', so the
        full objects are resolved through batched '/tracks' lookups.
        """
        album = await self.get_album(album_id)
        if not album:
            return []

        tracks: list[dict[str, Any]] = []
        for batch in chunked(await self.get_album_track_ids(album), TRACKS_BATCH_LIMIT):
            tracks.extend(await self.get_tracks(batch))
        return tracks

    async def get_artist_top_tracks(
        self, artist_id: str, market: str = "US"
    ) -> list[dict[str, Any]]:
        """Returns up to 10 top tracks for the artist."""
        result = await self.fetch_api(f"/artists/{artist_id}/top-tracks", market=market)
        return (result or {}).get("tracks") or []

    async def get_track(self, track_id: str) -> dict[str, Any] | None:
        return await self.fetch_api(f"/tracks/{track_id}")

    async def get_tracks(self, track_ids: list[str]) -> list[dict[str, Any]]:
        """
        Gets up to 50 tracks at once, including 'external_ids' (ISRC).
        Longer lists are truncated. Unknown ids come back as None entries.
        """
        if not track_ids:
            return []
        if len(track_ids) > TRACKS_BATCH_LIMIT:
            log.warning(f"get_tracks: max {TRACKS_BATCH_LIMIT} tracks per request")
            track_ids = track_ids[:TRACKS_BATCH_LIMIT]

        result = await self.fetch_api("/tracks", ids=",".join(track_ids))
        return (result or {}).get("tracks") or []

    async def get_albums(self, album_ids: list[str]) -> list[dict[str, Any]]:
        """
        Gets up to 20 albums at once, including 'external_ids' (UPC).
        Longer lists are truncated.
        """
        if not album_ids:
            return []
        if len(album_ids) > ALBUMS_BATCH_LIMIT:
            log.warning(f"get_albums: max {ALBUMS_BATCH_LIMIT} albums per request")
            album_ids = album_ids[:ALBUMS_BATCH_LIMIT]

        result = await self.fetch_api("/albums", ids=",".join(album_ids))
        return (result or {}).get("albums") or []

"""
Handles the Spotify OAuth 2.0 authorization code flow with PKCE, including
token refresh and persistence.
"""

import base64
import hashlib
import logging
import secrets
import string
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlencode, urlparse

import aiohttp

from spotify_export.exceptions import AuthenticationError
from spotify_export.storage.token_store import TokenSet, TokenStore

if TYPE_CHECKING:
    from .client import SpotifyAPIClient

log = logging.getLogger(__name__)

SCOPES = [
    "user-read-private",
    "user-read-email",
    "user-library-read",
    "user-follow-read",
    "playlist-read-private",
    "playlist-read-collaborative",
]


def generate_code_verifier(length: int = 64) -> str:
    """A random PKCE verifier drawn from [A-Za-z0-9]."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def code_challenge(verifier: str) -> str:
    """The S256 challenge: unpadded base64url of the verifier's SHA-256."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class SpotifyAuthenticator:
    """
    Manages the authentication flow for the Spotify API client.
    """

    AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"
    # Refresh this many seconds before the access token actually expires
    REFRESH_MARGIN_SECONDS = 60

    def __init__(
        self,
        api_client: "SpotifyAPIClient",
        client_id: str,
        redirect_uri: str,
        token_store: TokenStore,
    ):
        """
        Args:
            api_client: A reference to the main SpotifyAPIClient instance.
            client_id: The Spotify application's client ID.
            redirect_uri: The redirect URI registered for the application.
            token_store: Where tokens are persisted between runs.
        """
        self._api_client = api_client
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self._store = token_store
        self._tokens = token_store.load()

    @property
    def tokens(self) -> TokenSet:
        return self._tokens

    def _set_tokens(self, tokens: TokenSet) -> None:
        self._tokens = tokens
        self._store.save(tokens)

    def build_authorize_url(self) -> str:
        """
        Starts a login: stores a fresh PKCE verifier and returns the URL the
        user has to open in a browser.
        """
        verifier = generate_code_verifier()
        self._set_tokens(self._tokens.model_copy(update={"code_verifier": verifier}))

        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "scope": " ".join(SCOPES),
            "code_challenge_method": "S256",
            "code_challenge": code_challenge(verifier),
            "redirect_uri": self.redirect_uri,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    @staticmethod
    def extract_code(redirect_response: str) -> str:
        """
        Accepts either the full redirected URL or the bare code.

        Raises:
            AuthenticationError: If Spotify redirected with an error or no code.
        """
        redirect_response = redirect_response.strip()
        if "://" not in redirect_response and "?" not in redirect_response:
            if not redirect_response:
                raise AuthenticationError("No authorization code provided.")
            return redirect_response

        query = parse_qs(urlparse(redirect_response).query)
        if error := query.get("error"):
            raise AuthenticationError(f"Spotify denied the authorization: {error[0]}")
        if not (code := query.get("code")):
            raise AuthenticationError("The redirect URL does not contain a 'code'.")
        return code[0]

    async def exchange_code(self, code: str) -> None:
        """
        Exchanges an authorization code for access and refresh tokens.

        Raises:
            AuthenticationError: If no login was started or Spotify rejects the code.
        """
        verifier = self._tokens.code_verifier
        if not verifier:
            raise AuthenticationError(
                "No pending login found. Run 'spotify-export login' again."
            )

        data = await self._request_token(
            {
                "client_id": self.client_id,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "code_verifier": verifier,
            }
        )
        if not data:
            raise AuthenticationError("Token exchange failed.")

        self._set_tokens(
            TokenSet(
                access_token=data["access_token"],
                refresh_token=data.get("refresh_token"),
                expires_at=time.time() + data.get("expires_in", 3600),
            )
        )
        log.info("Successfully authenticated with Spotify.")

    async def refresh_access_token(self) -> bool:
        """Uses the refresh token to obtain a new access token."""
        refresh_token = self._tokens.refresh_token
        if not refresh_token:
            return False

        data = await self._request_token(
            {
                "client_id": self.client_id,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
        if not data or not data.get("access_token"):
            return False

        self._set_tokens(
            self._tokens.model_copy(
                update={
                    "access_token": data["access_token"],
                    # Spotify may or may not rotate the refresh token
                    "refresh_token": data.get("refresh_token") or refresh_token,
                    "expires_at": time.time() + data.get("expires_in", 3600),
                }
            )
        )
        log.debug("Access token refreshed.")
        return True

    def is_authenticated(self) -> bool:
        tokens = self._tokens
        return bool(
            tokens.access_token and tokens.expires_at and time.time() < tokens.expires_at
        )

    def has_login(self) -> bool:
        """True when a session exists that can be used or refreshed."""
        return bool(self._tokens.access_token or self._tokens.refresh_token)

    async def get_access_token(self) -> str | None:
        """
        Returns a usable access token, refreshing it silently when it is about
        to expire. Returns None when no valid token can be obtained.
        """
        tokens = self._tokens
        if not tokens.access_token:
            return None

        if tokens.expires_at and time.time() >= (
            tokens.expires_at - self.REFRESH_MARGIN_SECONDS
        ):
            if not await self.refresh_access_token():
                log.debug("Token refresh failed; request skipped.")
                return None

        return self._tokens.access_token

    def logout(self) -> None:
        self._tokens = TokenSet()
        self._store.clear()

    async def _request_token(self, form: dict[str, Any]) -> dict[str, Any] | None:
        session = await self._api_client.get_session()
        try:
            async with session.post(
                self.TOKEN_URL,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            ) as r:
                if r.status != 200:
                    log.error(f"Token request failed ({r.status}): {await r.text()}")
                    return None
                return await r.json()
        except aiohttp.ClientError as e:
            log.error(f"Token request error: {e}")
            return None

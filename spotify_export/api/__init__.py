"""
Spotify API Layer.

This package handles all communication with the Spotify Web API and its
accounts service.
"""

from .auth import SpotifyAuthenticator
from .client import SpotifyAPIClient
from .rate_limiter import AdaptiveRateLimiter

__all__ = ["AdaptiveRateLimiter", "SpotifyAPIClient", "SpotifyAuthenticator"]

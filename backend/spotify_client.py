"""
Spotify API Client Infrastructure

Handles low-level Spotify API concerns:
- Client-credentials token exchange
- Token caching with expiry-based refresh
- Authenticated, read-only catalog queries

Used by the catalog routes for all upstream interactions.
"""

import base64
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from errors import (
    ConfigurationError,
    UpstreamApiError,
    UpstreamAuthError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

TOKEN_URL = 'https://accounts.spotify.com/api/token'
API_BASE_URL = 'https://api.spotify.com/v1'

# Subtracted from the reported token lifetime so a token is never handed out
# right at its real expiry
TOKEN_SAFETY_MARGIN = 60
DEFAULT_TOKEN_LIFETIME = 3600


@dataclass(frozen=True)
class ExchangeResult:
    token: str
    lifetime_seconds: int


@dataclass(frozen=True)
class Credential:
    value: str
    expires_at: float


class SpotifyCredentialExchanger:
    """
    Performs the OAuth client-credentials round trip against Spotify's
    accounts service.
    """

    def __init__(self, session: requests.Session = None, timeout: float = 10,
                 token_url: str = TOKEN_URL):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token_url = token_url

    def exchange(self, client_id: str, client_secret: str) -> ExchangeResult:
        """
        Exchange client id/secret for an application access token

        Raises:
            UpstreamAuthError: If the token endpoint returns a non-success status
            UpstreamTimeoutError: If the endpoint does not answer within the timeout
        """
        credentials_b64 = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()

        try:
            response = self.session.post(
                self.token_url,
                headers={
                    'Authorization': f'Basic {credentials_b64}',
                    'Content-Type': 'application/x-www-form-urlencoded'
                },
                data={'grant_type': 'client_credentials'},
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            raise UpstreamTimeoutError(self.token_url, self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamAuthError(None, str(e))

        if not response.ok:
            raise UpstreamAuthError(response.status_code, response.text)

        try:
            data = response.json()
            return ExchangeResult(
                token=data['access_token'],
                lifetime_seconds=int(data.get('expires_in', DEFAULT_TOKEN_LIFETIME))
            )
        except (ValueError, KeyError, TypeError, AttributeError):
            raise UpstreamAuthError(response.status_code, response.text)


class TokenCache:
    """
    Holds a single bearer credential and refreshes it once it expires.

    Refreshes are serialized with a lock: callers that arrive while an
    exchange is in flight wait for it and reuse its token.
    """

    def __init__(self, exchanger, client_id: Optional[str], client_secret: Optional[str],
                 margin: int = TOKEN_SAFETY_MARGIN, clock: Callable[[], float] = time.time):
        self.exchanger = exchanger
        self.client_id = client_id
        self.client_secret = client_secret
        self.margin = margin
        self.clock = clock
        self._credential: Optional[Credential] = None
        self._lock = threading.Lock()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def _cached_token(self) -> Optional[str]:
        credential = self._credential
        if credential and self.clock() < credential.expires_at:
            return credential.value
        return None

    def get_token(self) -> str:
        """
        Get a valid Spotify access token (reuses existing if still valid)

        Raises:
            ConfigurationError: If client id or secret is missing
            UpstreamAuthError: If the exchange fails; the cache is left untouched
        """
        token = self._cached_token()
        if token:
            return token

        if not self.client_id or not self.client_secret:
            raise ConfigurationError(
                "Spotify credentials not configured. Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET"
            )

        with self._lock:
            # Another thread may have refreshed while we waited
            token = self._cached_token()
            if token:
                return token

            now = self.clock()
            result = self.exchanger.exchange(self.client_id, self.client_secret)
            self._credential = Credential(
                value=result.token,
                expires_at=now + result.lifetime_seconds - self.margin
            )
            logger.info(f"Obtained Spotify access token (valid for {result.lifetime_seconds}s)")
            return self._credential.value

    def invalidate(self, token: str = None) -> None:
        """
        Drop the cached credential so the next call performs an exchange

        When token is given, only that token is dropped; a newer one
        obtained by another thread in the meantime is kept.
        """
        with self._lock:
            if token is None or (self._credential and self._credential.value == token):
                self._credential = None


class SpotifyCatalogClient:
    """
    Read-only Spotify catalog client authenticated with a TokenCache
    """

    def __init__(self, token_cache: TokenCache, session: requests.Session = None,
                 timeout: float = 10, base_url: str = API_BASE_URL):
        self.token_cache = token_cache
        self.session = session or requests.Session()
        self.timeout = timeout
        self.base_url = base_url.rstrip('/')

    @classmethod
    def from_settings(cls, settings) -> 'SpotifyCatalogClient':
        session = requests.Session()
        exchanger = SpotifyCredentialExchanger(session=session, timeout=settings.http_timeout)
        cache = TokenCache(exchanger, settings.spotify_client_id, settings.spotify_client_secret)
        return cls(cache, session=session, timeout=settings.http_timeout)

    def get(self, path: str, params: dict = None) -> Any:
        """
        Authenticated GET against the catalog API

        Args:
            path: API path beginning with '/' (e.g. '/browse/new-releases')
            params: Optional query parameters

        Returns:
            Decoded JSON body

        Raises:
            UpstreamApiError: On a non-success status (401 also drops the cached token)
            UpstreamTimeoutError: If the call exceeds the timeout
        """
        token = self.token_cache.get_token()
        url = f"{self.base_url}{path}"

        try:
            response = self.session.get(
                url,
                headers={'Authorization': f'Bearer {token}'},
                params=params,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            raise UpstreamTimeoutError(url, self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamApiError(path, None, str(e))

        if response.status_code == 401:
            logger.warning("Spotify rejected the access token; dropping cached token")
            self.token_cache.invalidate(token)

        if not response.ok:
            raise UpstreamApiError(path, response.status_code, response.text)

        return response.json()

    # ========================================================================
    # CATALOG QUERIES
    # ========================================================================

    def featured_playlists(self, limit: int = 1) -> list:
        data = self.get('/browse/featured-playlists', {'limit': limit})
        return (data.get('playlists') or {}).get('items') or []

    def playlist_tracks(self, playlist_id: str, limit: int) -> list:
        data = self.get(f'/playlists/{playlist_id}/tracks', {'limit': limit})
        return data.get('items') or []

    def genre_seeds(self) -> list:
        data = self.get('/recommendations/available-genre-seeds')
        return data.get('genres') or []

    def recommendations(self, genre: str, limit: int) -> list:
        data = self.get('/recommendations', {'seed_genres': genre, 'limit': limit})
        return data.get('tracks') or []

    def search_tracks(self, query: str, limit: int) -> list:
        data = self.get('/search', {'q': query, 'type': 'track', 'limit': limit})
        return (data.get('tracks') or {}).get('items') or []

    def new_releases(self, limit: int) -> list:
        data = self.get('/browse/new-releases', {'limit': limit})
        return (data.get('albums') or {}).get('items') or []

from __future__ import annotations
import asyncio
import logging
import time
from typing import Any, Callable, Optional

import requests

from .config import TenantCredentials
from .exceptions import AuthError
from .token_cache import CachedToken, TokenCache

logger = logging.getLogger(__name__)

# Refresh well before the platform expires the token (tokens live ~48h)
EXPIRY_MARGIN_SECONDS = 2 * 60 * 60


def compute_expires_at(expires_in: float, now: float) -> float:
    margin = min(EXPIRY_MARGIN_SECONDS, expires_in / 2)
    return now + expires_in - margin


class AuthStage:
    """Attaches a bearer token to each request, running a client-credentials grant when needed."""

    def __init__(self, credentials: TenantCredentials, token_cache: TokenCache,
                 session: Optional[requests.Session] = None, timeout: int = 30,
                 clock: Callable[[], float] = time.time):
        self.credentials = credentials
        self.token_cache = token_cache
        self.session = session or requests.Session()
        self.timeout = timeout
        self.clock = clock

    @property
    def token_url(self) -> str:
        return self.credentials.auth_url.rstrip('/') + '/oauth/token'

    def _grant(self) -> requests.Response:
        creds = self.credentials
        return self.session.post(
            self.token_url,
            auth=(creds.client_id, creds.client_secret),
            data={'grant_type': 'client_credentials', 'scope': creds.scope},
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
            timeout=self.timeout,
        )

    async def fetch_token(self) -> CachedToken:
        key = self.credentials.project_key
        logger.info('Requesting access token for project %s', key)
        try:
            resp = await asyncio.to_thread(self._grant)
        except requests.RequestException as e:
            raise AuthError(0, str(e), message=f"Token endpoint unreachable: {e}") from e
        if not 200 <= resp.status_code < 300:
            body: Any
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            raise AuthError(resp.status_code, body)
        try:
            payload = resp.json()
            access_token = payload['access_token']
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(resp.status_code, resp.text, message='Token response did not contain an access token') from e
        now = self.clock()
        token = CachedToken(access_token, compute_expires_at(float(payload.get('expires_in') or 3600), now))
        self.token_cache.set(key, token)
        return token

    async def get_token(self) -> CachedToken:
        cached = self.token_cache.get(self.credentials.project_key)
        if cached is not None and not cached.is_expired(self.clock()):
            return cached
        return await self.fetch_token()

    async def apply(self, descriptor: Any) -> Any:
        token = await self.get_token()
        return descriptor.with_headers({'Authorization': f"Bearer {token.access_token}"})

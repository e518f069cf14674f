from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class CachedToken:
    access_token: str
    expires_at: float  # epoch seconds

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


class TokenCache:
    """In-memory store of the latest access token per tenant (project key).

    Expiry is not enforced here; the auth stage compares ``expires_at`` itself.
    Share one instance between clients to reuse tokens across them.
    """

    def __init__(self) -> None:
        self._store: Dict[str, CachedToken] = {}

    def get(self, tenant_key: str) -> Optional[CachedToken]:
        return self._store.get(tenant_key)

    def set(self, tenant_key: str, token: CachedToken) -> None:
        self._store[tenant_key] = token

    def __len__(self) -> int:
        return len(self._store)

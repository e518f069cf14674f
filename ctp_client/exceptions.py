from __future__ import annotations
from typing import Any, Dict, Optional


class CtpError(Exception):
    """Base error for everything raised by the commerce platform client."""


class ConfigError(CtpError):
    """Missing or invalid tenant configuration."""


class AuthError(CtpError):
    """Client-credentials grant rejected (or unreachable). Never retried."""

    def __init__(self, status: int, body: Any, message: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message or f"Auth error {status}: {_preview(body)}")


class HttpError(CtpError):
    """Terminal non-2xx response, or retries exhausted."""

    def __init__(self, status: int, body: Any, request: Optional[Dict[str, Any]] = None, message: Optional[str] = None):
        self.status = status
        self.body = body
        # request info with sensitive headers already masked
        self.request = request or {}
        super().__init__(message or f"HTTP {status}: {_preview(body)}")


class NotFoundError(HttpError):
    """Resource does not exist (404)."""


class ConflictError(HttpError):
    """Stale version on update/delete (409)."""


class RateLimitError(HttpError):
    """Rate limiting encountered (429) and retries exhausted."""


def _preview(body: Any, max_len: int = 200) -> str:
    text = body if isinstance(body, str) else repr(body)
    return text[:max_len]

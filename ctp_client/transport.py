from __future__ import annotations
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests

from .exceptions import ConflictError, HttpError, NotFoundError, RateLimitError

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = ('authorization',)
MASK = '********'


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 5
    retry_delay: float = 0.2  # seconds
    backoff: bool = True
    max_delay: float = 10.0

    def delay(self, attempt: int) -> float:
        """Wait before retry number ``attempt`` (1-based)."""
        if not self.backoff:
            return min(self.retry_delay, self.max_delay)
        return min(self.retry_delay * (2 ** (attempt - 1)), self.max_delay)


@dataclass(frozen=True)
class TransportResult:
    status_code: int
    body: Any
    headers: Dict[str, str]


def mask_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    masked: Dict[str, str] = {}
    for k, v in (headers or {}).items():
        if k.lower() in SENSITIVE_HEADERS:
            scheme = v.split(' ', 1)[0] if ' ' in v else ''
            masked[k] = f"{scheme} {MASK}" if scheme else MASK
        else:
            masked[k] = v
    return masked


def _is_retryable(status: int) -> bool:
    return status == 429 or status >= 500


def _decode(resp: requests.Response) -> Any:
    ctype = resp.headers.get('Content-Type', '')
    if 'application/json' in ctype and resp.content:
        try:
            return resp.json()
        except ValueError:
            return resp.text
    return resp.text


def _error_for(status: int, body: Any, request: Dict[str, Any], retries_exhausted: bool) -> HttpError:
    if status == 404:
        return NotFoundError(status, body, request)
    if status == 409:
        return ConflictError(status, body, request)
    if status == 429:
        return RateLimitError(status, body, request, message=f"Rate limit hit (429) after retries: {str(body)[:200]}")
    if retries_exhausted:
        return HttpError(status, body, request, message=f"Server error {status} after retries: {str(body)[:200]}")
    return HttpError(status, body, request)


class TransportStage:
    """Sends fully decorated requests to the platform API, retrying transient failures.

    ``requests`` is blocking, so each attempt runs in a worker thread; waits
    between attempts are ``asyncio.sleep`` so the event loop stays free.
    """

    def __init__(self, api_url: str, session: Optional[requests.Session] = None,
                 retry_policy: Optional[RetryPolicy] = None, timeout: int = 30):
        self.api_url = api_url.rstrip('/')
        self.session = session or requests.Session()
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout

    def _url(self, uri: str) -> str:
        return uri if uri.startswith('http') else self.api_url + '/' + uri.lstrip('/')

    def _send_once(self, method: str, url: str, headers: Dict[str, str], body: Any) -> requests.Response:
        data = None if body is None else json.dumps(body)
        return self.session.request(method, url, headers=headers, data=data, timeout=self.timeout)

    async def send(self, descriptor: Any) -> TransportResult:
        url = self._url(descriptor.uri)
        method = descriptor.method.upper()
        headers = dict(descriptor.headers)
        request_info = {'method': method, 'uri': descriptor.uri, 'headers': mask_headers(headers)}
        policy = self.retry_policy
        attempt = 0
        while True:
            logger.debug('%s %s headers=%s', method, url, request_info['headers'])
            try:
                resp = await asyncio.to_thread(self._send_once, method, url, headers, descriptor.body)
            except requests.RequestException as e:
                if attempt < policy.max_retries:
                    attempt += 1
                    wait = policy.delay(attempt)
                    logger.warning('Network error on %s %s (%s); retry %d/%d in %.2fs',
                                   method, descriptor.uri, e, attempt, policy.max_retries, wait)
                    await asyncio.sleep(wait)
                    continue
                raise HttpError(0, str(e), request_info, message=f"Network error: {e}") from e

            status = resp.status_code
            if 200 <= status < 300:
                return TransportResult(status, _decode(resp), dict(resp.headers))

            body = _decode(resp)
            if _is_retryable(status) and attempt < policy.max_retries:
                attempt += 1
                wait = policy.delay(attempt)
                if status == 429:
                    retry_after = resp.headers.get('Retry-After', '')
                    if retry_after.isdigit():
                        wait = min(float(retry_after), policy.max_delay)
                logger.warning('HTTP %d on %s %s; retry %d/%d in %.2fs',
                               status, method, descriptor.uri, attempt, policy.max_retries, wait)
                await asyncio.sleep(wait)
                continue
            raise _error_for(status, body, request_info, retries_exhausted=_is_retryable(status))

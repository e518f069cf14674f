"""In-process stand-ins for requests.Session used across the tests."""
import json
import threading
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlsplit


class FakeResponse:
    def __init__(self, status_code: int = 200, json_body: Any = None, text: Optional[str] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._json = json_body
        if json_body is not None:
            self.text = json.dumps(json_body)
            self.headers = {'Content-Type': 'application/json; charset=utf-8'}
        else:
            self.text = text or ''
            self.headers = {'Content-Type': 'text/plain'}
        self.headers.update(headers or {})
        self.content = self.text.encode('utf-8')

    def json(self):
        if self._json is None:
            raise ValueError('no json body')
        return self._json


def token_response(token: str = 'tok-1', expires_in: int = 172800) -> FakeResponse:
    return FakeResponse(200, {'access_token': token, 'expires_in': expires_in, 'token_type': 'Bearer'})


class FakeSession:
    """Stands in for requests.Session; records calls, tracks concurrency."""

    def __init__(self, responses: Optional[List[Any]] = None,
                 handler: Optional[Callable[[str, str, Any], FakeResponse]] = None,
                 token_responses: Optional[List[FakeResponse]] = None, latency: float = 0.0):
        self.responses = list(responses or [])
        self.handler = handler
        self.token_responses = list(token_responses or [])
        self.latency = latency
        self.token_calls: List[Dict[str, Any]] = []
        self.calls: List[Dict[str, Any]] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def post(self, url, auth=None, data=None, headers=None, timeout=None):
        with self._lock:
            self.token_calls.append({'url': url, 'auth': auth, 'data': data})
            if self.token_responses:
                return self.token_responses.pop(0)
        return token_response()

    def request(self, method, url, headers=None, data=None, timeout=None):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append({
                'method': method,
                'url': url,
                'headers': dict(headers or {}),
                'body': json.loads(data) if data else None,
            })
            nxt = self.responses.pop(0) if self.responses else None
        try:
            if self.latency:
                time.sleep(self.latency)
            if isinstance(nxt, Exception):
                raise nxt
            if nxt is not None:
                return nxt
            if self.handler is not None:
                return self.handler(method, url, json.loads(data) if data else None)
            return FakeResponse(200, {})
        finally:
            with self._lock:
                self.active -= 1


def query_of(url: str) -> Dict[str, List[str]]:
    return parse_qs(urlsplit(url).query)



from __future__ import annotations
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .auth import AuthStage
from .queue import AdmissionQueue
from .transport import TransportResult, TransportStage
from .user_agent import IdentityStage


JSON_HEADERS = {
    'Accept': 'application/json',
    'Content-Type': 'application/json',
}


@dataclass(frozen=True)
class RequestDescriptor:
    uri: str
    method: str = 'GET'
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(JSON_HEADERS)))

    def with_headers(self, extra: Mapping[str, str]) -> 'RequestDescriptor':
        return replace(self, headers=MappingProxyType({**self.headers, **extra}))


def build_request(uri: str, method: str = 'GET', body: Any = None,
                  headers: Optional[Dict[str, str]] = None) -> RequestDescriptor:
    return RequestDescriptor(uri, method, body, MappingProxyType({**JSON_HEADERS, **(headers or {})}))


class RequestExecutor:
    """auth -> identity -> admission queue -> transport.

    Only the network dispatch is gated by the queue, so token refreshes are not
    held back by a full queue.
    """

    def __init__(self, auth: AuthStage, identity: IdentityStage,
                 transport: TransportStage, queue: AdmissionQueue):
        self.auth = auth
        self.identity = identity
        self.transport = transport
        self.queue = queue

    async def execute(self, descriptor: RequestDescriptor) -> TransportResult:
        decorated = await self.auth.apply(descriptor)
        decorated = self.identity.apply(decorated)
        return await self.queue.run(lambda: self.transport.send(decorated))

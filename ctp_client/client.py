from __future__ import annotations
import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import requests

from .auth import AuthStage
from .config import TenantCredentials, load_credentials
from .exceptions import HttpError
from .executor import RequestDescriptor, RequestExecutor, build_request
from .meta import LIBRARY_NAME, VERSION
from .queue import AdmissionQueue
from .token_cache import TokenCache
from .transport import RetryPolicy, TransportResult, TransportStage
from .uri import RequestBuilder, ResourceUri
from .user_agent import IdentityStage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

PageCallback = Callable[[List[Dict[str, Any]]], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class BatchOptions:
    """Options for ``CtpClient.fetch_batches``.

    accumulate: return the concatenation of every page's results.
    page_size: ``limit`` requested per page; a shorter page ends the traversal.
    """
    accumulate: bool = False
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError('page_size must be >= 1')


class CtpClient:
    """High-level operations for one tenant of the commerce platform."""

    def __init__(self, credentials: TenantCredentials, executor: RequestExecutor):
        self.credentials = credentials
        self.executor = executor

    @classmethod
    def create_client(cls, credentials: TenantCredentials, component: str = 'extension',
                      token_cache: Optional[TokenCache] = None,
                      session: Optional[requests.Session] = None,
                      retry_policy: Optional[RetryPolicy] = None,
                      timeout: int = 30,
                      contact_url: Optional[str] = None,
                      contact_email: Optional[str] = None) -> 'CtpClient':
        session = session or requests.Session()
        executor = RequestExecutor(
            auth=AuthStage(credentials, token_cache if token_cache is not None else TokenCache(),
                           session=session, timeout=timeout),
            identity=IdentityStage(LIBRARY_NAME, f"{VERSION}/{component}", contact_url, contact_email),
            transport=TransportStage(credentials.api_url, session=session,
                                     retry_policy=retry_policy, timeout=timeout),
            queue=AdmissionQueue(credentials.concurrency),
        )
        return cls(credentials, executor)

    def builder(self) -> RequestBuilder:
        return RequestBuilder(self.credentials.project_key)

    async def execute(self, descriptor: RequestDescriptor) -> TransportResult:
        return await self.executor.execute(descriptor)

    async def create(self, uri: ResourceUri, body: Any) -> TransportResult:
        return await self.execute(build_request(uri.build(), 'POST', body))

    async def update(self, uri: ResourceUri, id: str, version: int, actions: List[Dict[str, Any]]) -> TransportResult:
        body = {
            'version': version,
            'actions': actions,
        }
        return await self.execute(build_request(uri.by_id(id).build(), 'POST', body))

    async def delete(self, uri: ResourceUri, id: str, version: int) -> TransportResult:
        return await self.execute(build_request(uri.by_id(id).with_version(version).build(), 'DELETE'))

    async def fetch(self, uri: ResourceUri) -> TransportResult:
        return await self.execute(build_request(uri.build()))

    async def fetch_by_id(self, uri: ResourceUri, id: str) -> TransportResult:
        return await self.execute(build_request(uri.by_id(id).build()))

    async def fetch_by_key(self, uri: ResourceUri, key: str) -> TransportResult:
        return await self.execute(build_request(uri.by_key(key).build()))

    async def fetch_batches(self, uri: ResourceUri, callback: PageCallback,
                            options: BatchOptions = BatchOptions()) -> Optional[List[Dict[str, Any]]]:
        """Walk a paged query with offset/limit, handing each page's results to ``callback``.

        Stops at the first page shorter than ``options.page_size``. Returns the
        concatenated results when ``options.accumulate`` is set, else ``None``.
        """
        accumulated: List[Dict[str, Any]] = []
        offset = 0
        total: Optional[int] = None
        pages = 0
        while True:
            page_uri = uri.per_page(options.page_size).offset(offset)
            result = await self.execute(build_request(page_uri.build()))
            if not isinstance(result.body, dict):
                raise HttpError(result.status_code, result.body, message=f"Unexpected page body from {page_uri.build()}: {str(result.body)[:200]}")
            body = result.body
            results = list(body.get('results') or [])
            count = len(results)
            if total is None:
                total = body.get('total')
            pages += 1
            if options.accumulate:
                accumulated.extend(results)
            ret = callback(results)
            if inspect.isawaitable(ret):
                await ret
            offset += count
            if count < options.page_size:
                break
        logger.debug('Fetched %d page(s), %d result(s) from %s (total=%s)', pages, offset, uri.build(), total)
        return accumulated if options.accumulate else None


def get_client(credentials: TenantCredentials, component: str = 'notification',
               token_cache: Optional[TokenCache] = None, **kwargs: Any) -> CtpClient:
    return CtpClient.create_client(credentials, component=component, token_cache=token_cache, **kwargs)


def get_client_for_project(project_key: str, component: str = 'extension',
                           token_cache: Optional[TokenCache] = None,
                           config_path: Optional[Path] = None, **kwargs: Any) -> CtpClient:
    credentials = load_credentials(project_key, config_path)
    return CtpClient.create_client(credentials, component=component, token_cache=token_cache, **kwargs)

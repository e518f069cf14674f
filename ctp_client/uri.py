"""Resource path builder for the commerce platform REST API.

    builder = RequestBuilder('my-project')
    builder.products.by_id('abc').with_version(3).build()
    # -> '/my-project/products/abc?version=3'
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

SERVICES: Dict[str, str] = {
    'carts': 'carts',
    'categories': 'categories',
    'channels': 'channels',
    'custom_objects': 'custom-objects',
    'customers': 'customers',
    'extensions': 'extensions',
    'inventory': 'inventory',
    'orders': 'orders',
    'payments': 'payments',
    'products': 'products',
    'shipping_methods': 'shipping-methods',
    'states': 'states',
    'subscriptions': 'subscriptions',
    'tax_categories': 'tax-categories',
    'types': 'types',
}


@dataclass(frozen=True)
class ResourceUri:
    """Immutable resource URI; every modifier returns a new instance."""
    project_key: str
    service: str
    id: Optional[str] = None
    key: Optional[str] = None
    version: Optional[int] = None
    where_: Tuple[str, ...] = ()
    expand_: Tuple[str, ...] = ()
    sort_: Tuple[str, ...] = ()
    limit: Optional[int] = None
    offset_: Optional[int] = None
    total: Optional[bool] = None

    def by_id(self, id: str) -> 'ResourceUri':
        if not id:
            raise ValueError('id required')
        return replace(self, id=id, key=None)

    def by_key(self, key: str) -> 'ResourceUri':
        if not key:
            raise ValueError('key required')
        return replace(self, key=key, id=None)

    def with_version(self, version: int) -> 'ResourceUri':
        if not isinstance(version, int) or isinstance(version, bool) or version < 0:
            raise ValueError(f'version must be a non-negative int, got {version!r}')
        return replace(self, version=version)

    def where(self, predicate: str) -> 'ResourceUri':
        return replace(self, where_=self.where_ + (predicate,))

    def expand(self, path: str) -> 'ResourceUri':
        return replace(self, expand_=self.expand_ + (path,))

    def sort(self, by: str, ascending: bool = True) -> 'ResourceUri':
        return replace(self, sort_=self.sort_ + (f"{by} {'asc' if ascending else 'desc'}",))

    def per_page(self, limit: int) -> 'ResourceUri':
        if limit < 0:
            raise ValueError('limit must be >= 0')
        return replace(self, limit=limit)

    def offset(self, offset: int) -> 'ResourceUri':
        if offset < 0:
            raise ValueError('offset must be >= 0')
        return replace(self, offset_=offset)

    def with_total(self, flag: bool = True) -> 'ResourceUri':
        return replace(self, total=flag)

    def query_params(self) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if self.version is not None:
            params.append(('version', str(self.version)))
        params.extend(('where', w) for w in self.where_)
        params.extend(('expand', e) for e in self.expand_)
        params.extend(('sort', s) for s in self.sort_)
        if self.limit is not None:
            params.append(('limit', str(self.limit)))
        if self.offset_ is not None:
            params.append(('offset', str(self.offset_)))
        if self.total is not None:
            params.append(('withTotal', 'true' if self.total else 'false'))
        return params

    def build(self) -> str:
        path = f"/{self.project_key}/{self.service}"
        if self.id:
            path += '/' + quote(self.id, safe='')
        elif self.key:
            path += '/key=' + quote(self.key, safe='')
        params = self.query_params()
        if params:
            path += '?' + urlencode(params)
        return path


class RequestBuilder:
    """Entry point for building resource URIs of one tenant."""

    def __init__(self, project_key: str):
        if not project_key:
            raise ValueError('project_key required')
        self.project_key = project_key

    def __getattr__(self, name: str) -> ResourceUri:
        if name in SERVICES:
            return ResourceUri(self.project_key, SERVICES[name])
        raise AttributeError(f"Unknown resource service: {name}")

    def service(self, path: str) -> ResourceUri:
        """URI for a service not listed in SERVICES, e.g. 'product-projections'."""
        return ResourceUri(self.project_key, path.strip('/'))

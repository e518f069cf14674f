"""Resilient client for the multi-tenant commerce platform REST API.

Usage example:
    from ctp_client import get_client_for_project, BatchOptions
    client = get_client_for_project('my-project')
    products = await client.fetch_batches(client.builder().products, handle_page,
                                          BatchOptions(accumulate=True))
"""
from .exceptions import CtpError, ConfigError, AuthError, HttpError, NotFoundError, ConflictError, RateLimitError  # noqa: F401
from .config import TenantCredentials, load_credentials  # noqa: F401
from .token_cache import CachedToken, TokenCache  # noqa: F401
from .client import BatchOptions, CtpClient, get_client, get_client_for_project  # noqa: F401
from .meta import VERSION as __version__  # noqa: F401

import pytest

from ctp_client.client import CtpClient
from ctp_client.config import TenantCredentials
from ctp_client.token_cache import TokenCache
from ctp_client.transport import RetryPolicy


@pytest.fixture
def credentials():
    return TenantCredentials(
        client_id='client-id',
        client_secret='client-secret',
        project_key='test-project',
        auth_url='https://auth.example.com',
        api_url='https://api.example.com',
    )


@pytest.fixture
def fast_retry():
    return RetryPolicy(max_retries=3, retry_delay=0, backoff=False)


@pytest.fixture
def make_client(credentials, fast_retry):
    def _make(session, token_cache=None, creds=None, component='extension'):
        return CtpClient.create_client(creds or credentials, component=component,
                                       token_cache=token_cache if token_cache is not None else TokenCache(),
                                       session=session, retry_policy=fast_retry)
    return _make

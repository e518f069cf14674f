import asyncio

import pytest
import requests

from ctp_client.exceptions import ConflictError, HttpError, NotFoundError, RateLimitError
from ctp_client.executor import build_request
from ctp_client.transport import RetryPolicy, TransportStage, mask_headers
from fakes import FakeResponse, FakeSession


def _send(stage, descriptor):
    return asyncio.run(stage.send(descriptor))


def _stage(session, max_retries=3):
    return TransportStage('https://api.example.com/', session=session,
                          retry_policy=RetryPolicy(max_retries=max_retries, retry_delay=0))


def test_transient_503_is_retried_transparently():
    session = FakeSession(responses=[FakeResponse(503, text='unavailable'), FakeResponse(200, {'id': 'x'})])
    result = _send(_stage(session), build_request('/p/products/x'))
    assert result.status_code == 200
    assert result.body == {'id': 'x'}
    assert len(session.calls) == 2
    assert session.calls[0]['url'] == 'https://api.example.com/p/products/x'


def test_network_error_is_retried():
    session = FakeSession(responses=[requests.ConnectionError('reset'), FakeResponse(200, {'ok': True})])
    result = _send(_stage(session), build_request('/p/products'))
    assert result.body == {'ok': True}
    assert len(session.calls) == 2


def test_network_error_after_retries_raises_http_error():
    session = FakeSession(responses=[requests.Timeout('slow')] * 3)
    with pytest.raises(HttpError) as exc:
        _send(_stage(session, max_retries=2), build_request('/p/products'))
    assert exc.value.status == 0
    assert len(session.calls) == 3


def test_5xx_retries_exhausted():
    session = FakeSession(handler=lambda m, u, b: FakeResponse(500, {'message': 'boom'}))
    with pytest.raises(HttpError) as exc:
        _send(_stage(session, max_retries=2), build_request('/p/products'))
    assert exc.value.status == 500
    assert exc.value.body == {'message': 'boom'}
    assert len(session.calls) == 3


def test_429_honours_retry_after_then_gives_up():
    session = FakeSession(handler=lambda m, u, b: FakeResponse(429, {'message': 'slow down'}, headers={'Retry-After': '0'}))
    with pytest.raises(RateLimitError):
        _send(_stage(session, max_retries=1), build_request('/p/products'))
    assert len(session.calls) == 2


def test_conflict_is_terminal():
    session = FakeSession(responses=[FakeResponse(409, {'message': 'version mismatch'})])
    with pytest.raises(ConflictError) as exc:
        _send(_stage(session), build_request('/p/products/x', 'POST', {'version': 1, 'actions': []}))
    assert exc.value.status == 409
    assert len(session.calls) == 1


def test_not_found_is_terminal():
    session = FakeSession(responses=[FakeResponse(404, {'message': 'missing'})])
    with pytest.raises(NotFoundError):
        _send(_stage(session), build_request('/p/products/nope'))
    assert len(session.calls) == 1


def test_error_carries_masked_headers():
    session = FakeSession(responses=[FakeResponse(400, {'message': 'bad'})])
    descriptor = build_request('/p/products').with_headers({'Authorization': 'Bearer secret-token'})
    with pytest.raises(HttpError) as exc:
        _send(_stage(session), descriptor)
    assert exc.value.request['headers']['Authorization'] == 'Bearer ********'
    assert 'secret-token' not in str(exc.value.request)
    # the real header still went over the wire
    assert session.calls[0]['headers']['Authorization'] == 'Bearer secret-token'


def test_body_is_json_encoded():
    session = FakeSession()
    _send(_stage(session), build_request('/p/products', 'POST', {'key': 'foo'}))
    assert session.calls[0]['body'] == {'key': 'foo'}
    assert session.calls[0]['method'] == 'POST'


def test_mask_headers():
    masked = mask_headers({'authorization': 'Bearer abc', 'Accept': 'application/json'})
    assert masked == {'authorization': 'Bearer ********', 'Accept': 'application/json'}
    assert mask_headers({'Authorization': 'abc'}) == {'Authorization': '********'}


def test_backoff_delays():
    policy = RetryPolicy(retry_delay=0.2, max_delay=1.0)
    assert [policy.delay(n) for n in (1, 2, 3, 4)] == [0.2, 0.4, 0.8, 1.0]
    assert RetryPolicy(retry_delay=0.5, backoff=False).delay(5) == 0.5


def test_retry_after_is_capped_by_max_delay(monkeypatch):
    waits = []

    async def fake_sleep(delay):
        waits.append(delay)

    monkeypatch.setattr('ctp_client.transport.asyncio.sleep', fake_sleep)
    session = FakeSession(responses=[FakeResponse(429, {'message': 'slow down'}, headers={'Retry-After': '120'}),
                                     FakeResponse(200, {'ok': True})])
    stage = TransportStage('https://api.example.com', session=session,
                           retry_policy=RetryPolicy(max_retries=2, retry_delay=0.1, max_delay=2.0))
    result = _send(stage, build_request('/p/products'))
    assert result.body == {'ok': True}
    assert waits == [2.0]

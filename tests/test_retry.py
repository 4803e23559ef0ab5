import errno
import socket

import httpx
import pytest

from httpcall import (
    NonRetryableTransportError,
    TransientTransportError,
    fixed_backoff,
    linear_backoff,
    no_backoff,
)
from tests._support import API, ScriptedServer


def _timeouts(count: int) -> list[httpx.TimeoutException]:
    return [httpx.ConnectTimeout(f'timed out {n}') for n in range(1, count + 1)]


async def test_retries_then_succeeds(make_client, sleeper):
    server = ScriptedServer(*_timeouts(4), httpx.Response(200, json={'message': 'foo'}))

    async with make_client(server) as client:
        response = await client.get(API)

    assert response.body == {'message': 'foo'}
    assert len(server.requests) == 5
    assert sleeper.delays == [0.1] * 4


async def test_five_transient_failures_are_absorbed(make_client):
    server = ScriptedServer(*_timeouts(5), httpx.Response(200, json=[1]))

    async with make_client(server) as client:
        response = await client.get(API)

    assert response.body == [1]
    assert len(server.requests) == 6


async def test_gives_up_after_six_timeouts(make_client):
    server = ScriptedServer(*_timeouts(6))

    async with make_client(server) as client:
        with pytest.raises(TransientTransportError) as exc_info:
            await client.get(API)

    assert exc_info.value.message == 'timed out 6'
    assert str(exc_info.value) == 'timed out 6'
    assert exc_info.value.code == 'ETIMEDOUT'
    assert exc_info.value.attempts == 6
    assert exc_info.value.status_code is None
    assert len(server.requests) == 6


async def test_retries_on_dns_failure(make_client):
    def not_found(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('not found') from socket.gaierror(
            socket.EAI_NONAME, 'Name or service not known'
        )

    server = ScriptedServer(not_found, httpx.Response(200, json={'message': 'foo'}))

    async with make_client(server) as client:
        response = await client.get(API)

    assert response.body == {'message': 'foo'}
    assert len(server.requests) == 2


async def test_retries_on_raw_connection_refused(make_client):
    server = ScriptedServer(
        ConnectionRefusedError(errno.ECONNREFUSED, 'Connection refused'),
        httpx.Response(204),
    )

    async with make_client(server) as client:
        response = await client.get(API)

    assert response.status_code == 204
    assert response.body is None


async def test_non_retryable_error_fails_immediately(make_client, sleeper):
    server = ScriptedServer(httpx.UnsupportedProtocol('oom'))

    async with make_client(server) as client:
        with pytest.raises(NonRetryableTransportError, match='^oom$'):
            await client.get(API)

    assert len(server.requests) == 1
    assert sleeper.delays == []


async def test_resends_identical_request(make_client):
    server = ScriptedServer(*_timeouts(2), httpx.Response(200, json={}))

    async with make_client(server) as client:
        await client.post(API, body={'foo': 'bar'})

    bodies = {request.content for request in server.requests}
    assert bodies == {b'{"foo":"bar"}'}


def test_backoff_strategies():
    assert fixed_backoff(0.5)(1) == fixed_backoff(0.5)(9) == 0.5
    assert no_backoff()(3) == 0.0
    assert linear_backoff(0.25, jitter=0)(4) == 1.0
    assert 0.9 <= linear_backoff(1.0, jitter=0.1)(1) <= 1.1


async def test_undecodable_body_is_a_typed_failure(make_client, sleeper):
    server = ScriptedServer(
        httpx.Response(
            200,
            stream=httpx.ByteStream(b'not gzip'),
            headers={'content-encoding': 'gzip'},
        ),
    )

    async with make_client(server) as client:
        with pytest.raises(NonRetryableTransportError) as exc_info:
            await client.get(API)

    assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
    assert exc_info.value.code is None
    assert len(server.requests) == 1
    assert sleeper.delays == []

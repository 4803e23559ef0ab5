import httpx
import pytest

from httpcall import HTTPError, RedirectLoopError
from tests._support import API, ScriptedServer, redirect


def _chain(length: int) -> list[httpx.Response]:
    return [redirect(f'{API}/foo{n + 1}') for n in range(1, length + 1)]


async def test_follows_redirects(make_client):
    server = ScriptedServer(*_chain(2), httpx.Response(200, json={'success': True}))

    async with make_client(server) as client:
        response = await client.get(f'{API}/foo1')

    assert response.body == {'success': True}
    assert [request.url.path for request in server.requests] == ['/foo1', '/foo2', '/foo3']


async def test_follows_ten_redirects(make_client):
    server = ScriptedServer(*_chain(10), httpx.Response(200, json={'hops': 10}))

    async with make_client(server) as client:
        response = await client.get(f'{API}/foo1')

    assert response.body == {'hops': 10}
    assert len(server.requests) == 11


async def test_follows_redirect_only_ten_times(make_client):
    server = ScriptedServer(*_chain(11))

    async with make_client(server) as client:
        with pytest.raises(RedirectLoopError) as exc_info:
            await client.get(f'{API}/foo1')

    assert str(exc_info.value) == 'Redirect loop at https://api.example.com:443/foo11'
    assert exc_info.value.url == 'https://api.example.com:443/foo11'


async def test_relative_location_keeps_method_and_body(make_client):
    server = ScriptedServer(
        redirect('/v2/items', status=307),
        httpx.Response(201, json={'id': 1}),
    )

    async with make_client(server) as client:
        response = await client.post(f'{API}/v1/items', body={'name': 'x'})

    moved = server.requests[1]
    assert response.status_code == 201
    assert moved.method == 'POST'
    assert str(moved.url) == f'{API}/v2/items'
    assert moved.content == b'{"name":"x"}'
    assert moved.headers['content-type'] == 'application/json'


async def test_redirect_without_location_is_a_response(make_client):
    server = ScriptedServer(httpx.Response(304))

    async with make_client(server) as client:
        response = await client.get(API)

    assert response.status_code == 304
    assert len(server.requests) == 1


async def test_error_after_redirect_names_final_url(make_client):
    server = ScriptedServer(redirect(f'{API}/gone'), httpx.Response(404, text='missing'))

    async with make_client(server) as client:
        with pytest.raises(HTTPError) as exc_info:
            await client.get(API)

    assert str(exc_info.value) == 'HTTP Error 404 for GET https://api.example.com:443/gone\nmissing'

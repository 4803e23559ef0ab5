import dataclasses as dc
import logging
import socket
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from httpcall._errors import classify_failure
from httpcall._request import RequestDescriptor, display_url

logger = logging.getLogger(__name__)


_REDACTED_HEADERS = frozenset({'authorization', 'proxy-authorization', 'cookie'})


@dc.dataclass(frozen=True, slots=True)
class ResponseEnvelope:
    '''
    One buffered transport response, consumed by the decoder.
    '''
    status_code: int
    headers: httpx.Headers
    content: bytes


def default_socket_options() -> list[tuple]:
    '''
    cross platform socket options for TCP connections

    Returns
    -------
    list[SockOpt]
    '''
    opts = []

    if hasattr(socket, "TCP_NODELAY"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_NODELAY, 1))

    if hasattr(socket, "SO_KEEPALIVE"):
        opts.append((socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1))

    if hasattr(socket, "TCP_KEEPIDLE"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, 60))

    return opts


def redact_headers(headers: httpx.Headers) -> dict[str, str]:
    return {
        name: '[REDACTED]' if name.lower() in _REDACTED_HEADERS else value
        for name, value in headers.items()
    }


class BorrowedTransport(httpx.AsyncBaseTransport):
    '''
    Wraps a transport supplied by the caller. Requests go through it, but
    closing the client leaves it open: the caller owns its lifetime.
    '''
    def __init__(self, inner: httpx.AsyncBaseTransport) -> None:
        self._inner: httpx.AsyncBaseTransport = inner

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        return None


class HttpTransport:
    '''
    The network collaborator of the request engine. Exactly one transport
    attempt per `send` call; never follows redirects on its own.
    '''
    def __init__(
        self,
        *,
        timeout: httpx.Timeout,
        trust_env: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        inner: httpx.AsyncBaseTransport
        if transport is not None:
            inner = BorrowedTransport(transport)
        else:
            inner = httpx.AsyncHTTPTransport(
                socket_options=default_socket_options(),
                trust_env=trust_env,
            )
        self._client: httpx.AsyncClient = httpx.AsyncClient(
            transport=inner,
            timeout=timeout,
            trust_env=trust_env,
            follow_redirects=False,
        )

    def _build(self, request: RequestDescriptor) -> httpx.Request:
        return self._client.build_request(
            method=request.method,
            url=request.url,
            headers=request.headers,
            content=request.body,
        )

    async def send(self, request: RequestDescriptor) -> ResponseEnvelope:
        '''
        Perform one transport attempt and buffer the response.

        Parameters
        ----------
        request : RequestDescriptor

        Returns
        -------
        ResponseEnvelope

        Raises
        ------
        TransientTransportError
            If the failure carries a retryable error code.
        NonRetryableTransportError
            For any other transport failure.
        '''
        logger.debug(
            f'--> {request.method} {display_url(request.url)} '
            f'{redact_headers(request.headers)}'
        )
        try:
            response = await self._client.send(self._build(request))
            content = await response.aread()
        except (httpx.RequestError, OSError) as exc:
            raise classify_failure(exc) from exc

        logger.debug(
            f'<-- {response.status_code} {display_url(request.url)} '
            f'{dict(response.headers)}'
        )
        return ResponseEnvelope(
            status_code=response.status_code,
            headers=response.headers,
            content=content,
        )

    @asynccontextmanager
    async def stream(self, request: RequestDescriptor) -> AsyncIterator[httpx.Response]:
        '''
        Open the request and yield the live, unbuffered response.
        No retries, redirects or decoding happen here.
        '''
        logger.debug(f'--> {request.method} {display_url(request.url)} (stream)')
        try:
            response = await self._client.send(self._build(request), stream=True)
        except (httpx.RequestError, OSError) as exc:
            raise classify_failure(exc) from exc

        try:
            yield response
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

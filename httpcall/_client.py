import asyncio
import dataclasses as dc
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from types import MappingProxyType
from typing import Any, Self

import httpx

from httpcall._decoder import HttpResponse
from httpcall._pagination import PaginationAggregator
from httpcall._redirect import RedirectResolver
from httpcall._request import RequestDescriptor, build_request
from httpcall._retry import Backoff, RetryPolicy, Sleep, fixed_backoff
from httpcall._transport import HttpTransport


def _base_timeouts() -> httpx.Timeout:
    return httpx.Timeout(
        connect=5.0,
        read=30.0,
        write=30.0,
        pool=5.0,
    )


def _frozen_headers(headers: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(headers or {}))


@dc.dataclass(frozen=True, slots=True)
class ClientConfig:
    '''
    Configuration captured when an `HTTPCall` is constructed and shared,
    read only, by every call it makes.
    '''
    host: str | None = None
    headers: Mapping[str, str] = dc.field(default_factory=lambda: _frozen_headers(None))
    timeout: httpx.Timeout = dc.field(default_factory=_base_timeouts)
    max_retries: int = 5
    max_redirects: int = 10
    backoff: Backoff = dc.field(default_factory=fixed_backoff)
    trust_env: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, 'headers', _frozen_headers(self.headers))

    def merge(self, **changes: Any) -> 'ClientConfig':
        '''
        New config with `changes` applied; `headers` are merged over the
        current ones rather than replacing them.
        '''
        if 'headers' in changes:
            changes['headers'] = {**self.headers, **(changes['headers'] or {})}
        return dc.replace(self, **changes)


class HTTPCall:
    '''
    Runs top-level calls through pagination, redirects and retries over a
    single httpx connection pool.

    Example
    -------
    >>> async with HTTPCall.defaults(host='api.example.com') as api:
    ...     response = await api.get('/items')
    '''

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._inner: httpx.AsyncBaseTransport | None = transport
        self._transport: HttpTransport = HttpTransport(
            timeout=self._config.timeout,
            trust_env=self._config.trust_env,
            transport=transport,
        )
        self._retry = RetryPolicy(backoff=self._config.backoff, sleep=sleep)
        self._paginator = PaginationAggregator(RedirectResolver(self._retry))

    @classmethod
    def defaults(
        cls,
        *,
        host: str | None = None,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
        **options: Any,
    ) -> Self:
        '''
        Build a client bound to a fixed host and header set.

        Parameters
        ----------
        host : str | None, optional
            host used for URLs given as `/path`
        headers : Mapping[str, str] | None, optional
            headers sent with every call
        **options
            any other `ClientConfig` field

        Returns
        -------
        HTTPCall
        '''
        config = ClientConfig(host=host, headers=_frozen_headers(headers), **options)
        return cls(config, transport=transport, sleep=sleep)

    def with_defaults(self, **changes: Any) -> Self:
        '''
        A new client whose config is this one with `changes` applied
        (headers are merged). This client is left untouched.

        An injected `transport` is shared by both clients; neither closes
        it, the caller that created it does.
        '''
        return type(self)(
            self._config.merge(**changes),
            transport=self._inner,
            sleep=self._retry.sleep,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    def build(
        self,
        method: str,
        url: str | httpx.URL,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> RequestDescriptor:
        return build_request(
            method,
            url,
            headers=headers,
            body=body,
            host=self._config.host,
            default_headers=self._config.headers,
            max_retries=self._config.max_retries,
            max_redirects=self._config.max_redirects,
        )

    async def request(
        self,
        method: str,
        url: str | httpx.URL,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        raw: bool = False,
        partial: bool = False,
    ) -> HttpResponse:
        '''
        Run one top-level call.

        Parameters
        ----------
        method : str
        url : str | httpx.URL
        headers : Mapping[str, str] | None, optional
        body : Any, optional
            sent as JSON unless a Content-Type header is given
        raw : bool, optional
            do not parse the response body as JSON, by default False
        partial : bool, optional
            do not follow `next-range` pagination, by default False

        Returns
        -------
        HttpResponse

        Raises
        ------
        HttpCallError
            or one of its subclasses, for every failure
        '''
        descriptor = self.build(method, url, headers=headers, body=body)
        return await self._paginator.fetch(
            self._transport,
            descriptor,
            raw=raw,
            partial=partial,
        )

    async def get(self, url: str | httpx.URL, **options: Any) -> HttpResponse:
        return await self.request('GET', url, **options)

    async def post(self, url: str | httpx.URL, **options: Any) -> HttpResponse:
        return await self.request('POST', url, **options)

    async def put(self, url: str | httpx.URL, **options: Any) -> HttpResponse:
        return await self.request('PUT', url, **options)

    async def patch(self, url: str | httpx.URL, **options: Any) -> HttpResponse:
        return await self.request('PATCH', url, **options)

    async def delete(self, url: str | httpx.URL, **options: Any) -> HttpResponse:
        return await self.request('DELETE', url, **options)

    @asynccontextmanager
    async def stream(
        self,
        url: str | httpx.URL,
        *,
        method: str = 'GET',
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> AsyncIterator[httpx.Response]:
        '''
        Yield the live `httpx.Response` without buffering it. There is no
        retry, redirect, pagination or error decoding on this path.
        '''
        descriptor = self.build(method, url, headers=headers, body=body)
        async with self._transport.stream(descriptor) as response:
            yield response

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()


async def request(method: str, url: str | httpx.URL, **options: Any) -> HttpResponse:
    async with HTTPCall() as client:
        return await client.request(method, url, **options)


async def get(url: str | httpx.URL, **options: Any) -> HttpResponse:
    return await request('GET', url, **options)


async def post(url: str | httpx.URL, **options: Any) -> HttpResponse:
    return await request('POST', url, **options)


async def put(url: str | httpx.URL, **options: Any) -> HttpResponse:
    return await request('PUT', url, **options)


async def patch(url: str | httpx.URL, **options: Any) -> HttpResponse:
    return await request('PATCH', url, **options)


async def delete(url: str | httpx.URL, **options: Any) -> HttpResponse:
    return await request('DELETE', url, **options)


@asynccontextmanager
async def stream(url: str | httpx.URL, **options: Any) -> AsyncIterator[httpx.Response]:
    async with HTTPCall() as client:
        async with client.stream(url, **options) as response:
            yield response

'''
**httpcall._request**
---------

Normalizes caller supplied options into an immutable `RequestDescriptor`.
Nothing here performs I/O; every problem with the caller's input surfaces
as `MalformedRequest` before the first network attempt.
'''
import dataclasses as dc
import json
import platform
from collections.abc import Mapping
from typing import Any, Literal, get_args

import httpx

from httpcall.__about__ import __version__
from httpcall._errors import MalformedRequest


Methods = Literal['GET', 'POST', 'PUT', 'PATCH', 'DELETE']

DEFAULT_PORTS = {
    'http': 80,
    'https': 443,
}


def user_agent() -> str:
    return f'http-call/{__version__} python-{platform.python_version()}'


def display_url(url: httpx.URL) -> str:
    '''
    Render a URL with its port always spelled out, which is how URLs
    appear in every httpcall error message.

    Parameters
    ----------
    url : httpx.URL

    Returns
    -------
    str
        e.g. `https://api.example.com:443/path?q=1`
    '''
    port = url.port or DEFAULT_PORTS.get(url.scheme)
    host = f'[{url.host}]' if ':' in url.host else url.host
    netloc = host if port is None else f'{host}:{port}'
    target = url.raw_path.decode('ascii') or '/'
    return f'{url.scheme}://{netloc}{target}'


@dc.dataclass(frozen=True, slots=True)
class RequestDescriptor:
    '''
    The canonical form of one logical call. Retries resend the same
    descriptor, redirects and pagination derive a new one.
    '''
    method: Methods
    url: httpx.URL
    headers: httpx.Headers = dc.field(default_factory=httpx.Headers)
    body: bytes | None = None
    max_retries: int = 5
    max_redirects: int = 10

    def with_url(self, url: httpx.URL) -> 'RequestDescriptor':
        return dc.replace(self, url=url, headers=self.headers.copy())

    def with_header(self, name: str, value: str) -> 'RequestDescriptor':
        headers = self.headers.copy()
        headers[name] = value
        return dc.replace(self, headers=headers)


def normalize_url(url: str | httpx.URL, host: str | None = None) -> httpx.URL:
    '''
    Resolve the caller's URL into an absolute http(s) URL.

    - `https://host:port/path` is kept as is
    - a bare `host` becomes `https://host`
    - a `/path` is resolved against `host` when one is configured

    Parameters
    ----------
    url : str | httpx.URL
    host : str | None, optional
        the host a pre-configured client is bound to, by default None

    Returns
    -------
    httpx.URL

    Raises
    ------
    MalformedRequest
        If the URL cannot be parsed, has no host or uses another scheme.
    '''
    raw = str(url).strip()

    if raw.startswith('/') and host:
        raw = f'{_base_for_host(host)}{raw}'
    elif '://' not in raw:
        raw = f'https://{raw}'

    try:
        parsed = httpx.URL(raw)
    except httpx.InvalidURL as exc:
        raise MalformedRequest(f'Invalid URL {raw!r}: {exc}') from exc

    if parsed.scheme not in DEFAULT_PORTS:
        raise MalformedRequest(f'Unsupported URL scheme: {parsed.scheme}')

    if not parsed.host:
        raise MalformedRequest(f'URL has no host: {raw!r}')

    return parsed


def _base_for_host(host: str) -> str:
    if '://' in host:
        return host.rstrip('/')
    return f'https://{host.rstrip("/")}'


def _merge_headers(*sources: Mapping[str, str] | None) -> httpx.Headers:
    merged = httpx.Headers()
    for source in sources:
        if not source:
            continue
        for name, value in source.items():
            merged[name] = str(value)
    return merged


def serialize_body(body: Any, headers: httpx.Headers) -> bytes:
    '''
    Encode the request body. Without a Content-Type the body is sent as
    JSON; with one, the caller's already-encoded body goes out untouched.

    Parameters
    ----------
    body : Any
    headers : httpx.Headers
        updated in place with Content-Type / Content-Length

    Returns
    -------
    bytes

    Raises
    ------
    MalformedRequest
        If the body cannot be serialized.
    '''
    if 'content-type' not in headers:
        try:
            content = json.dumps(
                body, separators=(',', ':'), ensure_ascii=False
            ).encode('utf-8')
        except (TypeError, ValueError) as exc:
            raise MalformedRequest(f'Cannot serialize request body: {exc}') from exc
        headers['Content-Type'] = 'application/json'
    elif isinstance(body, bytes):
        content = body
    elif isinstance(body, str):
        content = body.encode('utf-8')
    else:
        raise MalformedRequest(
            f'Body must be str or bytes when Content-Type is '
            f'{headers["content-type"]!r}, got {type(body).__name__}'
        )

    headers['Content-Length'] = str(len(content))
    return content


def build_request(
    method: str,
    url: str | httpx.URL,
    *,
    headers: Mapping[str, str] | None = None,
    body: Any = None,
    host: str | None = None,
    default_headers: Mapping[str, str] | None = None,
    max_retries: int = 5,
    max_redirects: int = 10,
) -> RequestDescriptor:
    '''
    Build the descriptor for one top-level call.

    Parameters
    ----------
    method : str
        one of GET, POST, PUT, PATCH, DELETE (any case)
    url : str | httpx.URL
    headers : Mapping[str, str] | None, optional
        caller headers, win over `default_headers`
    body : Any, optional
        structured value (sent as JSON) or pre-encoded str/bytes
    host : str | None, optional
        host of a pre-configured client, used for `/path` URLs
    default_headers : Mapping[str, str] | None, optional
        headers of a pre-configured client
    max_retries : int, optional
        extra attempts allowed on transient failures, by default 5
    max_redirects : int, optional
        redirect hops allowed, by default 10

    Returns
    -------
    RequestDescriptor

    Raises
    ------
    MalformedRequest
    '''
    verb = method.upper()
    if verb not in get_args(Methods):
        raise MalformedRequest(f'Unsupported HTTP method: {method}')

    target = normalize_url(url, host)
    all_headers = _merge_headers(
        {'User-Agent': user_agent()},
        default_headers,
        headers,
    )

    content = None
    if body is not None:
        content = serialize_body(body, all_headers)

    return RequestDescriptor(
        method=verb,  # type: ignore[arg-type]
        url=target,
        headers=all_headers,
        body=content,
        max_retries=max_retries,
        max_redirects=max_redirects,
    )

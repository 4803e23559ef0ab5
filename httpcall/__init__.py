'''
**httpcall**
---------

An HTTP request engine on top of httpx. One call to `get`/`post`/... is
resolved end to end: transient network failures are retried, redirects
are followed (at most 10 hops), `next-range` pagination is merged and the
body is decoded, with every failure surfaced as an `HttpCallError`.
'''
from httpcall.__about__ import __version__
from httpcall._client import (
    ClientConfig,
    HTTPCall,
    delete,
    get,
    patch,
    post,
    put,
    request,
    stream,
)
from httpcall._decoder import HttpResponse, decode_response, parse_body, render_body
from httpcall._errors import (
    RETRYABLE_CODES,
    ErrorKind,
    HTTPError,
    HttpCallError,
    MalformedRequest,
    NonRetryableTransportError,
    PaginationError,
    RedirectLoopError,
    TransientTransportError,
    TransportError,
    classify,
    classify_failure,
    transport_error_code,
)
from httpcall._pagination import PaginationAggregator, merge_pages
from httpcall._redirect import RedirectResolver, RedirectState
from httpcall._request import RequestDescriptor, build_request, display_url, user_agent
from httpcall._retry import RetryPolicy, fixed_backoff, linear_backoff, no_backoff
from httpcall._transport import HttpTransport, ResponseEnvelope

__all__ = [
    '__version__',
    'ClientConfig',
    'HTTPCall',
    'delete',
    'get',
    'patch',
    'post',
    'put',
    'request',
    'stream',
    'HttpResponse',
    'decode_response',
    'parse_body',
    'render_body',
    'RETRYABLE_CODES',
    'ErrorKind',
    'HTTPError',
    'HttpCallError',
    'MalformedRequest',
    'NonRetryableTransportError',
    'PaginationError',
    'RedirectLoopError',
    'TransientTransportError',
    'TransportError',
    'classify',
    'classify_failure',
    'transport_error_code',
    'PaginationAggregator',
    'merge_pages',
    'RedirectResolver',
    'RedirectState',
    'RequestDescriptor',
    'build_request',
    'display_url',
    'user_agent',
    'RetryPolicy',
    'fixed_backoff',
    'linear_backoff',
    'no_backoff',
    'HttpTransport',
    'ResponseEnvelope',
]

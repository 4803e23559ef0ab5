'''
error taxonomy for httpcall and the classification step that maps a
raw transport failure onto a closed set of error kinds before any retry
decision is made.

Raises
------
HttpCallError
    _base class of everything raised by a top-level call_
'''
import enum
import errno
import socket
from typing import TYPE_CHECKING, Any

import httpcore
import httpx

if TYPE_CHECKING:
    from httpcall._request import RequestDescriptor


class HttpCallError(Exception):
    '''
    Base class for every error surfaced by an httpcall request.

    Attributes
    ----------
    message : str
    status_code : int | None
        only set for responses that came back with status >= 400
    body : Any
        the decoded response body when one was received
    code : str | None
        the underlying transport error code when one is known
    '''
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: Any = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.status_code: int | None = status_code
        self.body: Any = body
        self.code: str | None = code


class MalformedRequest(HttpCallError, ValueError):
    '''
    Raised when a request cannot be built (bad URL, unknown method,
    body that cannot be serialized). Never retried.

    Parent: HttpCallError, ValueError
    '''


class TransportError(HttpCallError):
    ...


class TransientTransportError(TransportError):
    '''
    A failure whose code is in `RETRYABLE_CODES`. Raised to the caller
    only once the retry budget is spent.
    '''
    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message, code=code)
        self.attempts: int = attempts


class NonRetryableTransportError(TransportError):
    ...


class RedirectLoopError(HttpCallError):
    def __init__(self, url: str) -> None:
        super().__init__(f'Redirect loop at {url}')
        self.url: str = url


class HTTPError(HttpCallError):
    '''
    Raised for a response with status >= 400.
    '''
    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: Any,
        request: 'RequestDescriptor',
    ) -> None:
        super().__init__(message, status_code=status_code, body=body)
        self.request: 'RequestDescriptor' = request


class PaginationError(HttpCallError):
    '''
    Raised when the pages of a paginated response cannot be merged,
    i.e. some pages are arrays and others are not.
    '''


class ErrorKind(enum.Enum):
    TRANSIENT = 'transient'
    FATAL = 'fatal'


RETRYABLE_CODES: frozenset[str] = frozenset({
    'ETIMEDOUT',
    'ESOCKETTIMEDOUT',
    'ECONNRESET',
    'ENOTFOUND',
    'ECONNREFUSED',
    'EPIPE',
    'EHOSTUNREACH',
    'EAI_AGAIN',
})


_TIMEOUT_ERRORS = (
    TimeoutError,
    httpx.TimeoutException,
    httpcore.TimeoutException,
)

_DISCONNECT_ERRORS = (
    httpx.RemoteProtocolError,
    httpcore.RemoteProtocolError,
)


def _iter_chain(exc: BaseException):
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _gaierror_code(exc: socket.gaierror) -> str:
    if exc.errno == socket.EAI_AGAIN:
        return 'EAI_AGAIN'
    return 'ENOTFOUND'


def transport_error_code(exc: BaseException) -> str | None:
    '''
    Extract an OS / network error code from a transport failure by walking
    the exception chain (httpx wraps httpcore, which wraps the socket error).

    Parameters
    ----------
    exc : BaseException

    Returns
    -------
    str | None
        e.g. `'ECONNREFUSED'`, or None when no code can be determined
    '''
    for link in _iter_chain(exc):
        if isinstance(link, socket.gaierror):
            return _gaierror_code(link)

        if isinstance(link, _TIMEOUT_ERRORS):
            return 'ETIMEDOUT'

        if isinstance(link, OSError) and link.errno in errno.errorcode:
            return errno.errorcode[link.errno]

        if isinstance(link, _DISCONNECT_ERRORS):
            return 'ECONNRESET'

    return None


def classify(code: str | None) -> ErrorKind:
    if code in RETRYABLE_CODES:
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


def classify_failure(exc: BaseException) -> TransportError:
    '''
    Turn a raw transport failure into `TransientTransportError` or
    `NonRetryableTransportError`, keeping the original message.

    Parameters
    ----------
    exc : BaseException

    Returns
    -------
    TransportError
    '''
    code = transport_error_code(exc)
    message = str(exc) or exc.__class__.__name__

    if classify(code) is ErrorKind.TRANSIENT:
        return TransientTransportError(message, code=code)

    return NonRetryableTransportError(message, code=code)

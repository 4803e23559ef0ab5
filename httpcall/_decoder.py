'''
**httpcall._decoder**
---------

Turns a buffered `ResponseEnvelope` into an `HttpResponse`, or raises
`HTTPError` for any status >= 400.
'''
import dataclasses as dc
import json
import pprint
from typing import TYPE_CHECKING, Any

import httpx

from httpcall._errors import HTTPError
from httpcall._request import RequestDescriptor, display_url

if TYPE_CHECKING:
    from httpcall._transport import ResponseEnvelope


@dc.dataclass(frozen=True, slots=True)
class HttpResponse:
    status_code: int
    headers: httpx.Headers
    body: Any


def _text(content: bytes) -> str:
    return content.decode('utf-8', errors='replace')


def parse_body(content: bytes, *, raw: bool = False) -> Any:
    '''
    Decode a body as JSON, falling back to the raw text.

    Parameters
    ----------
    content : bytes
    raw : bool, optional
        skip JSON parsing, by default False

    Returns
    -------
    Any
        the JSON value, the text, or None for an empty body
    '''
    if not content:
        return None

    text = _text(content)
    if raw:
        return text

    try:
        return json.loads(text)
    except ValueError:
        return text


def render_body(body: Any) -> str:
    if isinstance(body, dict) and 'message' in body:
        return str(body['message'])
    if isinstance(body, str):
        return body
    return pprint.pformat(body)


def error_message(request: RequestDescriptor, status_code: int, body: Any) -> str:
    return (
        f'HTTP Error {status_code} for {request.method} {display_url(request.url)}\n'
        f'{render_body(body)}'
    )


def decode_response(
    request: RequestDescriptor,
    envelope: 'ResponseEnvelope',
    *,
    raw: bool = False,
) -> HttpResponse:
    '''
    Parameters
    ----------
    request : RequestDescriptor
        the request that produced `envelope`
    envelope : ResponseEnvelope
    raw : bool, optional
        keep the body as text, by default False

    Returns
    -------
    HttpResponse

    Raises
    ------
    HTTPError
        If the status code is 400 or above.
    '''
    body = parse_body(envelope.content, raw=raw)

    if envelope.status_code >= 400:
        raise HTTPError(
            error_message(request, envelope.status_code, body),
            status_code=envelope.status_code,
            body=body,
            request=request,
        )

    return HttpResponse(
        status_code=envelope.status_code,
        headers=envelope.headers,
        body=body,
    )

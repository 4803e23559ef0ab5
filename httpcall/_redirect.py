import dataclasses as dc
import logging
from typing import TYPE_CHECKING

import httpx

from httpcall._errors import MalformedRequest, RedirectLoopError
from httpcall._request import RequestDescriptor, display_url, normalize_url
from httpcall._retry import RetryPolicy

if TYPE_CHECKING:
    from httpcall._transport import HttpTransport, ResponseEnvelope

logger = logging.getLogger(__name__)


def is_redirect(envelope: 'ResponseEnvelope') -> bool:
    return 300 <= envelope.status_code < 400 and 'location' in envelope.headers


def redirect_target(request: RequestDescriptor, location: str) -> httpx.URL:
    '''
    Resolve a Location header (absolute or relative) against the URL
    that produced it.
    '''
    try:
        joined = request.url.join(location)
    except httpx.InvalidURL as exc:
        raise MalformedRequest(f'Invalid redirect location {location!r}: {exc}') from exc
    return normalize_url(joined)


@dc.dataclass(slots=True)
class RedirectState:
    '''
    Hops served so far for one top-level call, shared by every page
    that call fetches.
    '''
    hops: int = 0


class RedirectResolver:
    '''
    Re-issues a call at the `Location` of every 3xx response, up to the
    request's `max_redirects` hops per top-level call. Hop counting is the
    only loop check.
    '''
    def __init__(self, retry: RetryPolicy) -> None:
        self.retry: RetryPolicy = retry

    async def resolve(
        self,
        transport: 'HttpTransport',
        request: RequestDescriptor,
        state: RedirectState | None = None,
    ) -> tuple[RequestDescriptor, 'ResponseEnvelope']:
        '''
        Parameters
        ----------
        transport : HttpTransport
        request : RequestDescriptor
        state : RedirectState | None, optional
            hop count carried over from earlier round trips of the same
            call, by default a fresh one

        Returns
        -------
        tuple[RequestDescriptor, ResponseEnvelope]
            the request that produced the final, non redirect response
            along with that response

        Raises
        ------
        RedirectLoopError
            If more than `max_redirects` hops are served.
        '''
        state = state if state is not None else RedirectState()
        while True:
            envelope = await self.retry.send(transport, request)
            if not is_redirect(envelope):
                return request, envelope

            state.hops += 1
            if state.hops > request.max_redirects:
                raise RedirectLoopError(display_url(request.url))

            target = redirect_target(request, envelope.headers['location'])
            logger.debug(
                f'{envelope.status_code} redirect {state.hops}/{request.max_redirects}: '
                f'{display_url(request.url)} -> {display_url(target)}'
            )
            request = request.with_url(target)

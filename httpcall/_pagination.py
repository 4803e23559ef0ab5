'''
**httpcall._pagination**
---------

Follows `next-range` continuation headers. Every page is one full round
trip through the redirect resolver (and so the retry controller) and the
decoder; array bodies are concatenated in arrival order.
'''
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from httpcall._decoder import HttpResponse, decode_response
from httpcall._errors import PaginationError
from httpcall._redirect import RedirectResolver, RedirectState
from httpcall._request import RequestDescriptor, display_url

if TYPE_CHECKING:
    from httpcall._transport import HttpTransport

logger = logging.getLogger(__name__)

CONTINUATION_HEADER = 'next-range'
RANGE_HEADER = 'range'


def merge_pages(pages: Sequence[Any]) -> Any:
    '''
    Merge decoded page bodies.

    Parameters
    ----------
    pages : Sequence[Any]

    Returns
    -------
    Any
        the concatenation when every page is a list, otherwise the last page

    Raises
    ------
    PaginationError
        If some pages are lists and others are not.
    '''
    lists = [isinstance(page, list) for page in pages]
    if all(lists):
        merged: list = []
        for page in pages:
            merged.extend(page)
        return merged

    if any(lists):
        raise PaginationError(
            f'Cannot merge {len(pages)} pages: '
            f'{lists.count(True)} are arrays and {lists.count(False)} are not'
        )

    return pages[-1]


class PaginationAggregator:
    def __init__(self, resolver: RedirectResolver) -> None:
        self.resolver: RedirectResolver = resolver

    async def round_trip(
        self,
        transport: 'HttpTransport',
        request: RequestDescriptor,
        state: RedirectState,
        *,
        raw: bool = False,
    ) -> tuple[RequestDescriptor, HttpResponse]:
        final_request, envelope = await self.resolver.resolve(transport, request, state)
        return final_request, decode_response(final_request, envelope, raw=raw)

    async def fetch(
        self,
        transport: 'HttpTransport',
        request: RequestDescriptor,
        *,
        raw: bool = False,
        partial: bool = False,
    ) -> HttpResponse:
        '''
        Drive the call until a response arrives without a continuation
        header. Any page failing aborts the whole call. Each page is asked
        for at the URL the previous page was finally served from, and all
        pages draw on one redirect budget.

        Parameters
        ----------
        transport : HttpTransport
        request : RequestDescriptor
        raw : bool, optional
            keep bodies as text, by default False
        partial : bool, optional
            return the first page only, by default False

        Returns
        -------
        HttpResponse
            status and headers of the first page, body merged over all pages
        '''
        redirects = RedirectState()
        request, first = await self.round_trip(transport, request, redirects, raw=raw)
        if partial:
            return first

        pages = [first.body]
        token = first.headers.get(CONTINUATION_HEADER)
        while token is not None:
            logger.debug(f'Fetching next page of {display_url(request.url)}: range {token}')
            request, page = await self.round_trip(
                transport,
                request.with_header(RANGE_HEADER, token),
                redirects,
                raw=raw,
            )
            pages.append(page.body)
            token = page.headers.get(CONTINUATION_HEADER)

        if len(pages) == 1:
            return first

        return HttpResponse(
            status_code=first.status_code,
            headers=first.headers,
            body=merge_pages(pages),
        )

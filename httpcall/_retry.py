'''
retry controller for httpcall transport attempts

Raises
------
TransientTransportError
    _the last transient failure, once every attempt is exhausted_
NonRetryableTransportError
    _immediately, on the first non retryable failure_
'''
import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from httpcall._errors import TransientTransportError
from httpcall._request import RequestDescriptor, display_url

if TYPE_CHECKING:
    from httpcall._transport import HttpTransport, ResponseEnvelope


logger = logging.getLogger(__name__)

Backoff = Callable[[int], float]
Sleep = Callable[[float], Awaitable[None]]


def fixed_backoff(delay: float = 0.1) -> Backoff:
    def backoff(attempt_no: int) -> float:
        return delay
    return backoff


def linear_backoff(delay: float = 0.25, jitter: float = 0.1) -> Backoff:
    '''
    delay grows with the attempt number, +/- `jitter` of itself

    Parameters
    ----------
    delay : float, optional
        The base delay between attempts, by default 0.25
    jitter : float, optional
        The jitter factor to apply to the delay, by default 0.1
    '''
    def backoff(attempt_no: int) -> float:
        base = delay * attempt_no

        if jitter:
            j = base * jitter
            base += random.uniform(-j, j)

        return max(0.0, base)
    return backoff


def no_backoff() -> Backoff:
    return fixed_backoff(0.0)


class RetryPolicy:

    def __init__(
        self,
        *,
        backoff: Backoff | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        '''
        Parameters
        ----------
        backoff : Backoff | None, optional
            attempt number -> seconds to wait before the next attempt,
            by default a fixed 0.1s
        sleep : Sleep, optional
            the timer used to wait, by default asyncio.sleep
        '''
        self.backoff: Backoff = backoff or fixed_backoff()
        self.sleep: Sleep = sleep

    async def send(
        self,
        transport: 'HttpTransport',
        request: RequestDescriptor,
    ) -> 'ResponseEnvelope':
        '''
        Send `request`, resending it unchanged after each transient failure
        until `request.max_retries` extra attempts have been used.

        Parameters
        ----------
        transport : HttpTransport
        request : RequestDescriptor

        Returns
        -------
        ResponseEnvelope
        '''
        attempt_no = 0
        while True:
            try:
                return await transport.send(request)
            except TransientTransportError as exc:
                attempt_no += 1
                exc.attempts = attempt_no
                if attempt_no > request.max_retries:
                    logger.warning(
                        f'Giving up on {request.method} {display_url(request.url)} '
                        f'after {attempt_no} attempts: {exc.message}'
                    )
                    raise

                delay = self.backoff(attempt_no)
                logger.warning(
                    f'{exc.code} on {request.method} {display_url(request.url)}, '
                    f'retry {attempt_no}/{request.max_retries} in {delay:.2f}s'
                )
                await self.sleep(delay)

from collections.abc import Callable

import httpx

API = 'https://api.example.com'

Step = httpx.Response | BaseException | Callable[[httpx.Request], httpx.Response]


class ScriptedServer:
    '''
    Plays back one step per request: a response to return, an exception
    to raise, or a handler to call. Every request seen is recorded.
    '''
    def __init__(self, *steps: Step) -> None:
        self.steps: list[Step] = list(steps)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.steps:
            raise AssertionError(f'unexpected request: {request.method} {request.url}')

        step = self.steps.pop(0)
        if isinstance(step, BaseException):
            raise step
        if callable(step) and not isinstance(step, httpx.Response):
            return step(request)
        return step

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def redirect(location: str, status: int = 302) -> httpx.Response:
    return httpx.Response(status, headers={'Location': location})

import pytest

from httpcall import ClientConfig, HTTPCall
from tests._support import ScriptedServer, SleepRecorder


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_client(sleeper: SleepRecorder):
    def factory(server: ScriptedServer, config: ClientConfig | None = None) -> HTTPCall:
        return HTTPCall(config, transport=server.transport, sleep=sleeper)
    return factory

import json
from typing import Callable, List

import httpx
import pytest

from sommelier.config import DEFAULT_PUBLIC_DIR, Config

DOMAIN = "https://sommelier.my.salesforce.com"
BASE_URL = f"{DOMAIN}/services/data/v60.0"
AGENT_ID = "0XxTEST000000001"


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """Stand-in for asyncio.sleep that only records the requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


def make_client(handler: Callable[[httpx.Request], httpx.Response], requests: List[httpx.Request]):
    """AsyncClient whose traffic goes to handler, recording every request."""

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))


def request_json(request: httpx.Request):
    return json.loads(request.content.decode())


@pytest.fixture
def config():
    return Config(
        host="127.0.0.1",
        port=3000,
        log_level="INFO",
        public_dir=DEFAULT_PUBLIC_DIR,
        openai_api_key="sk-test",
        salesforce_domain=DOMAIN,
        consumer_key="consumer-key",
        consumer_secret="consumer-secret",
        api_version="v60.0",
        agent_id=AGENT_ID,
        agent_timeout=5.0,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()

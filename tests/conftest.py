"""
Shared fixtures for key rotator tests.
"""

from typing import Callable, List

import httpx
import pytest

from key_rotator.core.config import RotatorConfig
from key_rotator.pool.manager import CredentialPool


UPSTREAM_BASE = "https://upstream.test/v1beta"


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """
    Simulated upstream API.

    Wraps a responder in an httpx.MockTransport and records every request
    that reaches it.
    """

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.calls: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self.responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def keys_used(self) -> List[str]:
        return [call.url.params["key"] for call in self.calls]


def status_by_key(statuses: dict, default: int = 200):
    """Responder returning a fixed status per API key."""

    def responder(request: httpx.Request) -> httpx.Response:
        status = statuses.get(request.url.params.get("key"), default)
        return httpx.Response(status, text=f"status {status}")

    return responder


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def keys():
    return ["key-alpha-0000", "key-bravo-1111", "key-charlie-2222"]


@pytest.fixture
def config(keys):
    return RotatorConfig(api_keys=tuple(keys), upstream_base_url=UPSTREAM_BASE)


@pytest.fixture
def pool(keys, clock):
    return CredentialPool(keys, clock=clock)

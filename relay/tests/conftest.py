"""Shared fixtures for relay tests."""

from typing import Any, Dict, List

import pytest

from relay.core.activity import ActivityFeed
from relay.core.message_log import MessageLog
from relay.core.registry import Registry
from relay.core.router import Router
from relay.models.client import TransportHandle


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle(TransportHandle):
    """In-memory handle recording every payload it is sent."""

    def __init__(self, open_: bool = True, fail: bool = False):
        self.open = open_
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []

    @property
    def is_open(self) -> bool:
        return self.open

    async def send(self, payload: Dict[str, Any]) -> bool:
        if not self.open or self.fail:
            return False
        self.sent.append(payload)
        return True

    def types(self) -> List[str]:
        return [payload["type"] for payload in self.sent]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return Registry(clock=clock)


@pytest.fixture
def message_log(clock):
    return MessageLog(max_messages=100, clock=clock)


@pytest.fixture
def activity():
    return ActivityFeed()


@pytest.fixture
def router(registry, message_log, activity):
    return Router(registry, message_log, activity)

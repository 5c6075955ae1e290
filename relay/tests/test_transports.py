"""Unit tests for transport delivery and the push session logic."""

import asyncio
import json

import pytest

from relay.core.router import Outbound
from relay.models.client import TransportKind
from relay.transports.polling_transport import PollingTransport
from relay.transports.websocket_transport import PushSession, PushTransport
from conftest import FakeHandle


@pytest.fixture
def push(registry, router):
    return PushTransport(registry, router)


@pytest.fixture
def polling(registry, router, message_log):
    return PollingTransport(registry, router, message_log)


def test_capabilities(push, polling):
    assert push.kind is TransportKind.PUSH
    assert push.supports_private and push.supports_presence
    assert polling.kind is TransportKind.POLL
    assert not polling.supports_private and not polling.supports_presence


@pytest.mark.asyncio
async def test_deliver_drops_unreachable(push, router):
    """Test delivery skips closed, failing and unknown recipients and carries on."""
    closed = FakeHandle()
    failing = FakeHandle(fail=True)
    healthy = FakeHandle()
    await router.join("closed", "C", handle=closed)
    await router.join("failing", "F", handle=failing)
    await router.join("healthy", "H", handle=healthy)
    closed.open = False

    payload = {"type": "chat", "text": "x"}
    delivered = await push.deliver([
        Outbound(payload, to="closed"),
        Outbound(payload, to="failing"),
        Outbound(payload, to="gone"),
        Outbound(payload, to="healthy"),
        Outbound(payload),
    ])

    assert delivered == 1
    assert healthy.sent == [payload]
    assert closed.sent == [] and failing.sent == []


@pytest.mark.asyncio
async def test_deliver_reply(push):
    caller = FakeHandle()
    assert await push.deliver([Outbound({"type": "user_list", "users": []})], reply=caller) == 1
    assert caller.types() == ["user_list"]


@pytest.mark.asyncio
async def test_push_session_flow(push, registry):
    """Test a session joins, re-joins under a new id and closes."""
    alice = PushSession(FakeHandle())
    bob = PushSession(FakeHandle())

    await push.handle_message(alice, json.dumps({"type": "join", "id": "a1", "nickname": "Alice"}))
    await push.handle_message(bob, json.dumps({"type": "join", "id": "b1", "nickname": "Bob"}))
    assert alice.handle.types() == ["joined", "user_joined"]
    assert bob.handle.types() == ["joined"]

    await push.handle_message(alice, json.dumps({"type": "join", "id": "a2", "nickname": "Alice"}))
    assert await registry.get("a1") is None
    assert await registry.count() == 2
    assert bob.handle.types() == ["joined", "user_left", "user_joined"]

    await push.close(alice)
    assert await registry.count() == 1
    assert bob.handle.sent[-1] == {"type": "user_left", "nickname": "Alice", "clientsOnline": 1}


@pytest.mark.asyncio
async def test_push_session_touches_on_activity(push, registry, clock):
    session = PushSession(FakeHandle())
    await push.handle_message(session, json.dumps({"type": "join", "id": "a1"}))
    clock.advance(30)

    await push.handle_message(session, json.dumps({"type": "list_users"}))
    assert (await registry.get("a1")).last_seen == clock.now


@pytest.mark.asyncio
async def test_close_before_join_is_silent(push, registry):
    await push.close(PushSession(FakeHandle()))
    assert await registry.count() == 0


@pytest.mark.asyncio
async def test_polling_join_and_messages(polling, router, registry, clock):
    """Test polling reads are heartbeats and leave the log untouched."""
    watcher = FakeHandle()
    await router.join("w1", "Watcher", handle=watcher)

    assert await polling.join("p1", "Poller") == 2
    assert watcher.sent == [{"type": "user_joined", "nickname": "Poller", "clientsOnline": 2}]

    await polling.send("p1", "hello")
    assert watcher.sent[-1]["text"] == "hello"

    clock.advance(20)
    messages, count = await polling.messages(0, "p1")
    assert count == 2
    assert [m.text for m in messages] == ["hello"]
    assert (await registry.get("p1")).last_seen == clock.now

    again, _ = await polling.messages(0, "unknown")
    assert again == messages
    assert sorted(c["id"] for c in await polling.clients()) == ["p1", "w1"]


class StalledHandle(FakeHandle):
    """Handle whose writes block until released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def send(self, payload):
        await self.release.wait()
        return await super().send(payload)


@pytest.mark.asyncio
async def test_deliver_not_held_up_by_stalled_client(push, router):
    """Test a stalled recipient does not delay delivery to the others."""
    stalled = StalledHandle()
    healthy = FakeHandle()
    await router.join("s1", "Stalled", handle=stalled)
    await router.join("h1", "Healthy", handle=healthy)

    payload = {"type": "chat", "text": "x"}
    delivery = asyncio.ensure_future(push.deliver([
        Outbound(payload, to="s1"),
        Outbound(payload, to="h1"),
    ]))
    for _ in range(10):
        await asyncio.sleep(0)

    assert healthy.sent == [payload]
    assert not delivery.done()

    stalled.release.set()
    assert await delivery == 2
    assert stalled.sent == [payload]


@pytest.mark.asyncio
async def test_deliver_keeps_order_per_recipient(push, router):
    bob = FakeHandle()
    await router.join("b1", "Bob", handle=bob)

    await push.deliver([
        Outbound({"type": "user_left"}, to="b1"),
        Outbound({"type": "user_joined"}, to="b1"),
    ])
    assert bob.types() == ["user_left", "user_joined"]

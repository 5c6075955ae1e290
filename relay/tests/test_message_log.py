"""Unit tests for the MessageLog class."""

import pytest

from relay.core.message_log import MessageLog


def test_since_filters_and_orders(message_log):
    """Test since returns only later messages, oldest first."""
    first = message_log.append("Alice", "a1", "one")
    second = message_log.append("Bob", "b1", "two")
    third = message_log.append("Alice", "a1", "three")

    assert [m.text for m in message_log.since(0)] == ["one", "two", "three"]
    assert message_log.since(first.timestamp) == [second, third]
    assert message_log.since(third.timestamp) == []


def test_since_is_idempotent(message_log):
    message_log.append("Alice", "a1", "one")
    message_log.append("Bob", "b1", "two")

    assert message_log.since(0) == message_log.since(0)
    assert len(message_log) == 2


def test_timestamps_strictly_increase(message_log):
    """Test messages stamped within the same millisecond still get unique cursors."""
    stamps = [message_log.append("Alice", "a1", str(i)).timestamp for i in range(5)]
    assert stamps == sorted(set(stamps))


def test_append_rejects_out_of_order_timestamp(message_log):
    message_log.append("Alice", "a1", "one", timestamp=500)
    with pytest.raises(ValueError):
        message_log.append("Alice", "a1", "two", timestamp=500)


def test_count_bound_drops_oldest(clock):
    log = MessageLog(max_messages=3, clock=clock)
    for i in range(5):
        log.append("Alice", "a1", str(i))

    assert len(log) == 3
    assert [m.text for m in log.since(0)] == ["2", "3", "4"]


def test_prune_by_age(clock):
    """Test prune drops messages older than max_age and nothing else."""
    log = MessageLog(max_messages=10, max_age=60, clock=clock)
    log.append("Alice", "a1", "old")
    clock.advance(45)
    log.append("Bob", "b1", "recent")
    clock.advance(30)

    assert log.prune() == 1
    assert [m.text for m in log.since(0)] == ["recent"]


def test_prune_without_max_age(message_log, clock):
    message_log.append("Alice", "a1", "one")
    clock.advance(10_000)
    assert message_log.prune() == 0
    assert len(message_log) == 1


def test_message_wire_format(message_log):
    message = message_log.append("Alice", "a1", "hi", timestamp=42)
    assert message.to_dict() == {"from": "Alice", "fromId": "a1", "text": "hi", "timestamp": 42}

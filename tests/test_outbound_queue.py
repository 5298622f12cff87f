# tests/test_outbound_queue.py
"""Tests for the per-bridge outbound buffer."""

from marco_bridge.schemas.events import Sender, TextMessageEvent
from marco_bridge.services.outbound_queue import OutboundQueue


def _text(body: str) -> TextMessageEvent:
    return TextMessageEvent(sender=Sender(mxid="@alice:example.org", display_name="Alice"), body=body)


def test_drain_returns_fifo_then_empties():
    queue = OutboundQueue(max_events=10)
    queue.enqueue("bridge", _text("one"))
    queue.enqueue("bridge", _text("two"))

    assert [event.body for event in queue.drain("bridge")] == ["one", "two"]
    assert queue.drain("bridge") == []


def test_bridges_are_isolated():
    queue = OutboundQueue(max_events=10)
    queue.enqueue("a", _text("for a"))

    assert queue.drain("b") == []
    assert queue.pending("a") == 1


def test_overflow_drops_oldest():
    queue = OutboundQueue(max_events=2)
    for body in ("one", "two", "three"):
        queue.enqueue("bridge", _text(body))

    assert [event.body for event in queue.drain("bridge")] == ["two", "three"]


def test_discard_forgets_pending_events():
    queue = OutboundQueue(max_events=10)
    queue.enqueue("bridge", _text("stale"))
    queue.discard("bridge")

    assert queue.pending("bridge") == 0
    assert queue.drain("bridge") == []

"""Per-bridge buffer of events waiting for the plugin to poll.

This is a lossy channel: each bridge keeps at most ``max_events`` events and
drops the oldest on overflow. A poll drains the buffer; nothing is redelivered.
"""

from __future__ import annotations

import logging
from collections import deque
from threading import Lock

from marco_bridge.core.settings import settings
from marco_bridge.schemas.events import OutboundEvent

logger = logging.getLogger(__name__)


class OutboundQueue:
    """FIFO queues of outbound events keyed by bridge id."""

    def __init__(self, max_events: int | None = None) -> None:
        self.max_events = max_events or settings.outbound_queue_max_events
        self._queues: dict[str, deque[OutboundEvent]] = {}
        self._lock = Lock()

    def enqueue(self, bridge_id: str, event: OutboundEvent) -> None:
        """Append ``event`` to the bridge's queue."""
        with self._lock:
            queue = self._queues.get(bridge_id)
            if queue is None:
                queue = deque(maxlen=self.max_events)
                self._queues[bridge_id] = queue
            if len(queue) == self.max_events:
                logger.warning("Outbound queue full, dropping oldest event")
            queue.append(event)

    def drain(self, bridge_id: str) -> list[OutboundEvent]:
        """Return and clear every pending event of the bridge, oldest first."""
        with self._lock:
            queue = self._queues.pop(bridge_id, None)
        return list(queue) if queue else []

    def discard(self, bridge_id: str) -> None:
        """Forget all pending events of a bridge."""
        with self._lock:
            self._queues.pop(bridge_id, None)

    def pending(self, bridge_id: str) -> int:
        with self._lock:
            queue = self._queues.get(bridge_id)
            return len(queue) if queue else 0


class _OutboundQueueSingleton:
    """Singleton wrapper for OutboundQueue."""

    _instance: OutboundQueue | None = None

    @classmethod
    def get_instance(cls) -> OutboundQueue:
        """Get or create the singleton OutboundQueue instance."""
        if cls._instance is None:
            cls._instance = OutboundQueue()
        return cls._instance


def get_outbound_queue() -> OutboundQueue:
    """Return the process-wide outbound queue."""
    return _OutboundQueueSingleton.get_instance()

"""In-process fan-out of realtime envelopes to stream subscribers.

The broadcaster owns its subscriber set. Ledger code only calls ``publish``,
which never awaits: every subscriber has a bounded queue and a subscriber
whose queue is full or closed is dropped on the spot.
"""
import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def make_envelope(type_: str, data: Any, timestamp: Optional[datetime] = None) -> dict:
    timestamp = timestamp or datetime.now(timezone.utc)
    return {"type": type_, "data": data, "timestamp": timestamp.isoformat()}


@dataclass
class StreamFilter:
    contract_address: Optional[str] = None
    event_name: Optional[str] = None
    network_id: Optional[int] = None

    def matches(self, envelope: dict) -> bool:
        if envelope.get("type") != "event":
            return True
        data = envelope.get("data") or {}
        if self.contract_address is not None and data.get("contract_address") != self.contract_address:
            return False
        if self.event_name is not None and data.get("event_name") != self.event_name:
            return False
        if self.network_id is not None and data.get("network_id") != self.network_id:
            return False
        return True


class Subscription:
    def __init__(self, stream_filter: StreamFilter, maxsize: int):
        self.filter = stream_filter
        # One slot over maxsize is reserved for the close marker.
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1)
        self.maxsize = maxsize
        self.closed = False

    def offer(self, envelope: dict) -> bool:
        """Enqueue without waiting. False means this subscriber should be dropped."""
        if self.closed:
            return False
        if not self.filter.matches(envelope):
            return True
        if self.queue.qsize() >= self.maxsize:
            return False
        self.queue.put_nowait(envelope)
        return True

    def close(self) -> None:
        """Mark the subscription closed and wake its reader with ``None``."""
        if self.closed:
            return
        self.closed = True
        self.queue.put_nowait(None)

    async def get(self) -> Optional[dict]:
        """Next envelope, or None once the subscription has been closed."""
        return await self.queue.get()


class EventBroadcaster:
    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._subscribers: set[Subscription] = set()
        self._lock = threading.Lock()

    def subscribe(self, stream_filter: Optional[StreamFilter] = None) -> Subscription:
        sub = Subscription(stream_filter or StreamFilter(), self._queue_size)
        with self._lock:
            self._subscribers.add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.close()
        with self._lock:
            self._subscribers.discard(sub)

    def publish(self, envelope: dict) -> int:
        """Offer the envelope to every subscriber; returns how many were dropped."""
        with self._lock:
            subscribers = list(self._subscribers)
        dead = [sub for sub in subscribers if not sub.offer(envelope)]
        for sub in dead:
            logger.warning("Dropping stream subscriber (queue full or closed)")
            self.unsubscribe(sub)
        return len(dead)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


broadcaster: Optional[EventBroadcaster] = None


def get_broadcaster() -> EventBroadcaster:
    global broadcaster
    if broadcaster is None:
        from chainledger.config import settings
        broadcaster = EventBroadcaster(queue_size=settings.EVENT_STREAM_QUEUE_SIZE)
    return broadcaster

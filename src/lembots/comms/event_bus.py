"""EventBus — typed, bounded pub/sub between the solver host and its listeners.

Messages are ``{"type": ..., "data": {...}}`` dicts.  A subscriber may ask
for a subset of event types; anything else never reaches its queue, so a
WebSocket relay or a CLI watcher does not filter by hand.

Queues are bounded.  When one is full the bus makes room by evicting the
oldest message whose type is not *pinned* (in practice a stale
``solver_progress`` frame).  Pinned types are only ever evicted by another
pinned message, so a listener waiting for ``solver_result`` gets it even
if it stopped draining progress.  A queue holding nothing but pinned
messages drops an incoming unpinned one instead, and counts the drop.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from loguru import logger


@dataclass
class _Subscription:
    queue: queue.Queue
    types: Optional[frozenset[str]] = None
    dropped: int = 0

    def wants(self, event_type: str) -> bool:
        return self.types is None or event_type in self.types


class EventBus:
    """Thread-safe pub/sub with per-subscriber type filters."""

    def __init__(self, maxsize: int = 100, pinned: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[_Subscription] = []
        self._maxsize = maxsize
        self._pinned = frozenset(pinned)

    @property
    def pinned(self) -> frozenset[str]:
        return self._pinned

    def subscribe(self, types: Iterable[str] | None = None) -> queue.Queue:
        """Return a queue that receives every event, or only ``types``."""
        sub = _Subscription(
            queue=queue.Queue(maxsize=self._maxsize),
            types=frozenset(types) if types is not None else None,
        )
        with self._lock:
            self._subscriptions.append(sub)
        return sub.queue

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s.queue is not q]

    def dropped(self, q: queue.Queue) -> int:
        """Messages that never reached ``q`` because it was full."""
        with self._lock:
            for sub in self._subscriptions:
                if sub.queue is q:
                    return sub.dropped
        return 0

    def publish(self, event_type: str, data: dict | None = None) -> int:
        """Deliver to every interested subscriber.  Returns how many got it."""
        msg: dict = {"type": event_type}
        if data is not None:
            msg["data"] = data
        delivered = 0
        with self._lock:
            for sub in self._subscriptions:
                if sub.wants(event_type) and self._offer(sub, msg):
                    delivered += 1
        return delivered

    def _offer(self, sub: _Subscription, msg: dict) -> bool:
        try:
            sub.queue.put_nowait(msg)
            return True
        except queue.Full:
            pass
        if self._make_room(sub, evict_pinned=msg["type"] in self._pinned):
            try:
                sub.queue.put_nowait(msg)
                return True
            except queue.Full:
                pass
        sub.dropped += 1
        logger.debug(f"EventBus queue full, dropped {msg['type']}")
        return False

    def _make_room(self, sub: _Subscription, evict_pinned: bool) -> bool:
        # Consumers only ever take from the queue, so re-queueing what we
        # drained cannot overflow it.
        held: list[dict] = []
        while True:
            try:
                held.append(sub.queue.get_nowait())
            except queue.Empty:
                break
        victim = next((i for i, m in enumerate(held) if m["type"] not in self._pinned), None)
        if victim is None and evict_pinned and held:
            victim = 0
        if victim is not None:
            del held[victim]
        for m in held:
            sub.queue.put_nowait(m)
        return victim is not None or len(held) < self._maxsize

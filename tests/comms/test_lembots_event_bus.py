"""Unit tests for EventBus — typed, bounded pub/sub messaging."""
from __future__ import annotations

import queue
import threading

import pytest

from lembots.comms.event_bus import EventBus

TERMINAL = ("solver_result", "solver_cancelled", "solver_error")


def _drain(q: queue.Queue) -> list[dict]:
    msgs = []
    while True:
        try:
            msgs.append(q.get_nowait())
        except queue.Empty:
            return msgs


@pytest.mark.unit
class TestEventBusBasics:
    def test_subscribe_returns_queue(self):
        assert isinstance(EventBus().subscribe(), queue.Queue)

    def test_publish_delivers_to_subscriber(self):
        bus = EventBus()
        q = bus.subscribe()
        bus.publish("solver_progress", {"attempts": 3})
        msg = q.get_nowait()
        assert msg == {"type": "solver_progress", "data": {"attempts": 3}}

    def test_publish_without_data(self):
        bus = EventBus()
        q = bus.subscribe()
        bus.publish("ping")
        assert q.get_nowait() == {"type": "ping"}

    def test_multiple_subscribers(self):
        bus = EventBus()
        q1, q2 = bus.subscribe(), bus.subscribe()
        assert bus.publish("solver_result", {}) == 2
        assert q1.get_nowait()["type"] == "solver_result"
        assert q2.get_nowait()["type"] == "solver_result"

    def test_unsubscribe_stops_delivery(self):
        bus = EventBus()
        q = bus.subscribe()
        bus.unsubscribe(q)
        assert bus.publish("solver_result") == 0
        assert q.empty()

    def test_unsubscribe_unknown_queue_is_ignored(self):
        EventBus().unsubscribe(queue.Queue())


@pytest.mark.unit
class TestEventBusTypeFilter:
    def test_subscriber_only_sees_requested_types(self):
        bus = EventBus()
        q = bus.subscribe(types=TERMINAL)
        bus.publish("solver_progress", {"attempts": 1})
        bus.publish("level_loaded")
        bus.publish("solver_result", {"solved": True})
        assert [m["type"] for m in _drain(q)] == ["solver_result"]

    def test_unfiltered_subscriber_sees_everything(self):
        bus = EventBus()
        everything = bus.subscribe()
        results = bus.subscribe(types=["solver_result"])
        assert bus.publish("solver_progress") == 1
        assert bus.publish("solver_result") == 2
        assert len(_drain(everything)) == 2
        assert len(_drain(results)) == 1


@pytest.mark.unit
class TestEventBusOverflow:
    def test_full_queue_drops_oldest(self):
        bus = EventBus(maxsize=3)
        q = bus.subscribe()
        for i in range(5):
            bus.publish("solver_progress", {"i": i})
        received = [m["data"]["i"] for m in _drain(q)]
        assert received == [2, 3, 4]

    def test_pinned_event_survives_progress_flood(self):
        bus = EventBus(maxsize=3, pinned=TERMINAL)
        q = bus.subscribe()
        bus.publish("solver_result", {"solved": True})
        for i in range(10):
            bus.publish("solver_progress", {"i": i})
        types = [m["type"] for m in _drain(q)]
        assert types == ["solver_result", "solver_progress", "solver_progress"]

    def test_unpinned_event_dropped_when_queue_holds_only_pinned(self):
        bus = EventBus(maxsize=2, pinned=TERMINAL)
        q = bus.subscribe()
        bus.publish("solver_cancelled")
        bus.publish("solver_result")
        assert bus.publish("solver_progress") == 0
        assert bus.dropped(q) == 1
        assert [m["type"] for m in _drain(q)] == ["solver_cancelled", "solver_result"]

    def test_pinned_event_evicts_oldest_pinned_as_last_resort(self):
        bus = EventBus(maxsize=2, pinned=TERMINAL)
        q = bus.subscribe()
        bus.publish("solver_cancelled", {"n": 1})
        bus.publish("solver_cancelled", {"n": 2})
        assert bus.publish("solver_result", {"n": 3}) == 1
        assert [m["data"]["n"] for m in _drain(q)] == [2, 3]

    def test_dropped_for_unknown_queue_is_zero(self):
        assert EventBus().dropped(queue.Queue()) == 0


@pytest.mark.unit
class TestEventBusThreads:
    def test_concurrent_publishers(self):
        bus = EventBus(maxsize=10_000)
        q = bus.subscribe()

        def publish(n):
            for i in range(100):
                bus.publish("tick", {"n": n, "i": i})

        threads = [threading.Thread(target=publish, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert q.qsize() == 800

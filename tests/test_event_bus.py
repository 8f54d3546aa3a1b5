"""Tests for the event bus."""

import threading

from wordbreak.event_bus import EventBus, EventType


class TestEventBus:
    def test_inline_delivery_when_not_started(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventType.GAME_STARTED, received.append)
        bus.publish(EventType.GAME_STARTED, {"max_guesses": 6}, source="test")
        assert len(received) == 1
        assert received[0].get("max_guesses") == 6
        assert received[0].source == "test"

    def test_priority_order(self):
        bus = EventBus()
        order = []
        bus.subscribe(EventType.BARGE_IN, lambda e: order.append("low"), priority=0)
        bus.subscribe(EventType.BARGE_IN, lambda e: order.append("high"), priority=10)
        bus.subscribe(EventType.BARGE_IN, lambda e: order.append("low-2"), priority=0)
        bus.publish(EventType.BARGE_IN)
        assert order == ["high", "low", "low-2"]

    def test_filter_and_unsubscribe(self):
        bus = EventBus()
        received = []
        sub_id = bus.subscribe(
            EventType.GUESS_EVALUATED,
            received.append,
            filter_func=lambda e: e.get("number") == 2,
        )
        bus.publish(EventType.GUESS_EVALUATED, {"number": 1})
        bus.publish(EventType.GUESS_EVALUATED, {"number": 2})
        assert [e.get("number") for e in received] == [2]

        assert bus.unsubscribe(sub_id)
        assert not bus.unsubscribe(sub_id)
        bus.publish(EventType.GUESS_EVALUATED, {"number": 2})
        assert len(received) == 1

    def test_subscribe_all_sees_every_type(self):
        bus = EventBus()
        seen = []
        bus.subscribe_all(lambda e: seen.append(e.type))
        bus.publish(EventType.TURN_STARTED)
        bus.publish(EventType.GAME_ENDED)
        assert seen == [EventType.TURN_STARTED, EventType.GAME_ENDED]

    def test_failing_observer_does_not_break_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(EventType.GAME_ENDED, broken, priority=5)
        bus.subscribe(EventType.GAME_ENDED, received.append)
        bus.publish(EventType.GAME_ENDED)
        assert len(received) == 1

    def test_dispatcher_keeps_publish_order(self):
        bus = EventBus()
        seen = []
        done = threading.Event()
        bus.subscribe(EventType.GUESS_EVALUATED, lambda e: seen.append(e.get("number")))
        bus.subscribe(EventType.SYSTEM_SHUTDOWN, lambda e: done.set())
        bus.start()
        try:
            for n in range(1, 6):
                bus.publish(EventType.GUESS_EVALUATED, {"number": n})
            bus.publish(EventType.SYSTEM_SHUTDOWN)
            assert done.wait(2.0)
            assert seen == [1, 2, 3, 4, 5]
            assert threading.current_thread().name != "EventDispatcher"
        finally:
            bus.stop()
        assert not bus.is_running

    def test_stats_and_history(self):
        bus = EventBus()
        bus.subscribe(EventType.TURN_STARTED, lambda e: None)
        bus.subscribe_all(lambda e: None)
        first = bus.publish(EventType.TURN_STARTED, {"turn_id": 1})
        second = bus.publish(EventType.TURN_CANCELLED)
        assert first.seq < second.seq

        stats = bus.get_stats()
        assert stats["published"] == 2
        assert stats["delivered"] == 2
        assert stats["subscriptions"] == {"TURN_STARTED": 1, "*": 1}
        assert [e.type for e in bus.recent_events()] == [EventType.TURN_STARTED, EventType.TURN_CANCELLED]
        bus.clear_history()
        assert bus.recent_events() == []

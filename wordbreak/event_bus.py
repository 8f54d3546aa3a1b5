"""
Event bus for Word Break.

Observers (console state display, logging, tests) learn about the turn engine
and the games only through here:
- the Turn Manager publishes every state transition, speech and recognition step
- games publish start / guess / mode / end notifications

Before ``start()`` (and with ``wait=True``) events are delivered on the
publisher's thread. After ``start()`` a single dispatcher thread delivers them,
so observers always see events in publish order.
"""

import itertools
import queue
import threading
import time
import traceback
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Deque, Dict, List, Optional

from wordbreak.utils import wb_log


class EventType(Enum):
    # Turn engine
    TURN_STATE_CHANGED = auto()
    TURN_STARTED = auto()
    TURN_CANCELLED = auto()
    TURN_REJECTED = auto()
    BARGE_IN = auto()
    GHOST_CALLBACK_DROPPED = auto()

    # Speech I/O
    SPEECH_STARTED = auto()
    SPEECH_FINISHED = auto()
    SPEECH_FAILED = auto()
    RECOGNITION_PARTIAL = auto()
    RECOGNITION_FINAL = auto()
    RECOGNITION_ERROR = auto()

    # Games
    GAME_STARTED = auto()
    GUESS_EVALUATED = auto()
    GAME_ENDED = auto()
    DIALOGUE_MODE_CHANGED = auto()

    # System
    SYSTEM_STARTUP = auto()
    SYSTEM_SHUTDOWN = auto()


_event_seq = itertools.count(1)


@dataclass(frozen=True)
class Event:
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    source: str = "unknown"
    timestamp: float = field(default_factory=time.time)
    seq: int = field(default_factory=lambda: next(_event_seq))

    def get(self, key: str, default=None):
        return self.payload.get(key, default)

    def __repr__(self):
        return f"Event({self.type.name}#{self.seq}, src={self.source})"


EventCallback = Callable[[Event], None]


@dataclass
class Subscription:
    """One registered observer. ``event_type`` None means every event."""

    sub_id: int
    event_type: Optional[EventType]
    callback: EventCallback
    priority: int = 0
    filter_func: Optional[Callable[[Event], bool]] = None

    def wants(self, event: Event) -> bool:
        if self.event_type is not None and self.event_type is not event.type:
            return False
        if self.filter_func is None:
            return True
        try:
            return bool(self.filter_func(event))
        except Exception as e:
            wb_log("EVENT_BUS", f"Filter error in subscription {self.sub_id}: {e}", level="ERROR")
            return False

    def deliver(self, event: Event):
        try:
            self.callback(event)
        except Exception as e:
            name = getattr(self.callback, "__qualname__", repr(self.callback))
            wb_log("EVENT_BUS", f"Observer {name} failed on {event.type.name}: {e}", level="ERROR")
            wb_log("EVENT_BUS", traceback.format_exc(), level="DEBUG")


class EventBus:
    """Publish/subscribe hub for turn and game notifications."""

    def __init__(self, max_queue_size: int = 1000, history_size: int = 100):
        self._subscriptions: List[Subscription] = []
        self._ids = itertools.count(1)
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._dispatcher: Optional[threading.Thread] = None
        self._running = False
        self._history: Deque[Event] = deque(maxlen=history_size)
        self._counters = {'published': 0, 'delivered': 0, 'dropped': 0}
        self._lock = threading.RLock()

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        if self._running:
            return
        self._running = True
        self._dispatcher = threading.Thread(target=self._dispatch_loop, name="EventDispatcher", daemon=True)
        self._dispatcher.start()
        wb_log("EVENT_BUS", "Dispatcher started")

    def stop(self, timeout: float = 2.0):
        """Stop after delivering everything already queued."""
        if not self._running:
            return
        self._running = False
        self._queue.put(None)
        if self._dispatcher is not None and self._dispatcher is not threading.current_thread():
            self._dispatcher.join(timeout=timeout)
        self._dispatcher = None
        wb_log("EVENT_BUS", "Dispatcher stopped")

    def _dispatch_loop(self):
        while True:
            event = self._queue.get()
            if event is None:
                break
            self._deliver(event)

    def _deliver(self, event: Event):
        with self._lock:
            matching = [s for s in self._subscriptions if s.wants(event)]
            self._history.append(event)
        # Stable sort: equal priorities keep subscription order
        matching.sort(key=lambda s: -s.priority)
        for subscription in matching:
            subscription.deliver(event)
        with self._lock:
            self._counters['delivered'] += 1

    def publish(
        self,
        event_type: EventType,
        payload: Optional[Dict[str, Any]] = None,
        source: str = "unknown",
        wait: bool = False,
    ) -> Optional[Event]:
        """
        Publish an event.

        Args:
            event_type: Event type
            payload: Event data
            source: Publishing component
            wait: Deliver on the calling thread even when the dispatcher runs

        Returns:
            The event, or None if the dispatcher queue was full.
        """
        event = Event(type=event_type, payload=dict(payload or {}), source=source)
        with self._lock:
            self._counters['published'] += 1

        if wait or not self._running:
            self._deliver(event)
            return event

        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                self._counters['dropped'] += 1
            wb_log("EVENT_BUS", f"Queue full, dropped {event_type.name}", level="WARNING")
            return None
        return event

    def subscribe(
        self,
        event_type: EventType,
        callback: EventCallback,
        priority: int = 0,
        filter_func: Optional[Callable[[Event], bool]] = None,
    ) -> int:
        """Register ``callback`` for ``event_type``; higher priority runs first. Returns a subscription id."""
        return self._add(event_type, callback, priority, filter_func)

    def subscribe_all(self, callback: EventCallback, priority: int = 0) -> int:
        """Register ``callback`` for every event type."""
        return self._add(None, callback, priority, None)

    def _add(self, event_type, callback, priority, filter_func) -> int:
        with self._lock:
            subscription = Subscription(next(self._ids), event_type, callback, priority, filter_func)
            self._subscriptions.append(subscription)
        target = event_type.name if event_type is not None else "*"
        name = getattr(callback, "__name__", repr(callback))
        wb_log("EVENT_BUS", f"Subscribed {name} to {target} (priority={priority})", level="DEBUG")
        return subscription.sub_id

    def unsubscribe(self, sub_id: int) -> bool:
        with self._lock:
            for subscription in self._subscriptions:
                if subscription.sub_id == sub_id:
                    self._subscriptions.remove(subscription)
                    return True
        return False

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            per_type: Dict[str, int] = {}
            for subscription in self._subscriptions:
                key = subscription.event_type.name if subscription.event_type is not None else "*"
                per_type[key] = per_type.get(key, 0) + 1
            return {
                **self._counters,
                'queued': self._queue.qsize(),
                'subscriptions': per_type,
            }

    def recent_events(self, count: int = 10) -> List[Event]:
        with self._lock:
            return list(self._history)[-count:]

    def clear_history(self):
        with self._lock:
            self._history.clear()

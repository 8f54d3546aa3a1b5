#!/usr/bin/env python3
"""
Serial execution context for the turn engine.

Provider callbacks arrive on audio/synthesis threads and timers fire on
their own threads. Everything is funnelled through one queue and executed by
a single worker, so the Turn Manager and the games see a strictly sequential
stream of events and never need locks of their own.
"""

import queue
import sys
import threading
import traceback
from typing import Callable, Optional, Protocol

from wordbreak.errors import InvalidGuessError
from wordbreak.utils import log_crash, wb_log


class TimerHandle:
    """Cancellable delayed call. Cancellation wins even if the timer already fired but has not run yet."""

    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self._cancelled = False
        self._timer: Optional[threading.Timer] = None

    def cancel(self):
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self):
        if self._cancelled:
            return
        self._cancelled = True
        self._callback()


class Scheduler(Protocol):
    """What the turn engine needs from an execution context."""

    def call_soon(self, callback: Callable, *args) -> None: ...

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle: ...


class SerialExecutor:
    """Single worker thread draining a FIFO of callables."""

    def __init__(self, name: str = "TurnExecutor"):
        self.name = name
        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False

    def start(self):
        if self._running:
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._worker_loop, name=self.name, daemon=True)
        self._thread.start()
        wb_log("SCHED", f"{self.name} started")

    def stop(self, timeout: float = 2.0):
        if not self._running:
            return
        self._running = False
        # Sentinel goes behind anything already queued, so pending callbacks still run
        self._queue.put(None)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._stop_event.set()
        self._thread = None
        wb_log("SCHED", f"{self.name} stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def call_soon(self, callback: Callable, *args) -> None:
        self._queue.put((callback, args))

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(lambda: callback(*args))
        timer = threading.Timer(max(0.0, delay), self.call_soon, args=(handle._run,))
        timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle

    def _worker_loop(self):
        while not self._stop_event.is_set():
            try:
                item = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if item is None:
                break
            callback, args = item
            try:
                callback(*args)
            except InvalidGuessError:
                # Evaluator misuse is a programming error: record it and stop processing events
                log_crash(*sys.exc_info(), where=self.name)
                self._running = False
                break
            except Exception as e:
                name = getattr(callback, "__qualname__", repr(callback))
                wb_log("SCHED", f"Callback {name} failed: {e}", level="ERROR")
                wb_log("SCHED", traceback.format_exc(), level="DEBUG")

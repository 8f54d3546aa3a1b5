"""Tests for the serial executor."""

import threading

from wordbreak.errors import InvalidGuessError
from wordbreak.scheduler import SerialExecutor, TimerHandle


class TestTimerHandle:
    def test_runs_once(self):
        calls = []
        handle = TimerHandle(lambda: calls.append(1))
        handle._run()
        handle._run()
        assert calls == [1]

    def test_cancel_wins(self):
        calls = []
        handle = TimerHandle(lambda: calls.append(1))
        handle.cancel()
        handle._run()
        assert calls == []
        assert handle.cancelled


class TestSerialExecutor:
    def setup_method(self):
        self.executor = SerialExecutor(name="TestExecutor")
        self.executor.start()

    def teardown_method(self):
        self.executor.stop()

    def test_runs_in_order_on_one_thread(self):
        seen = []
        done = threading.Event()
        for i in range(5):
            self.executor.call_soon(lambda n: seen.append((n, threading.current_thread().name)), i)
        self.executor.call_soon(done.set)
        assert done.wait(2.0)
        assert [n for n, _ in seen] == [0, 1, 2, 3, 4]
        assert {name for _, name in seen} == {"TestExecutor"}

    def test_call_later(self):
        done = threading.Event()
        self.executor.call_later(0.05, done.set)
        assert done.wait(2.0)

    def test_cancelled_timer_never_runs(self):
        fired = []
        done = threading.Event()
        handle = self.executor.call_later(0.05, fired.append, 1)
        handle.cancel()
        self.executor.call_later(0.2, done.set)
        assert done.wait(2.0)
        assert fired == []

    def test_callback_error_keeps_worker_alive(self):
        done = threading.Event()

        def broken():
            raise RuntimeError("boom")

        self.executor.call_soon(broken)
        self.executor.call_soon(done.set)
        assert done.wait(2.0)
        assert self.executor.is_running

    def test_invalid_guess_stops_worker(self, monkeypatch):
        crashes = []
        monkeypatch.setattr("wordbreak.scheduler.log_crash", lambda *exc, **kw: crashes.append((exc[0], kw.get("where"))))

        def corrupt():
            raise InvalidGuessError("target has 4 letters")

        self.executor.call_soon(corrupt)
        self.executor._thread.join(2.0)
        assert crashes == [(InvalidGuessError, "TestExecutor")]
        assert not self.executor.is_running

    def test_stop_drains_pending_work(self):
        seen = []
        blocker = threading.Event()
        self.executor.call_soon(blocker.wait, 1.0)
        self.executor.call_soon(seen.append, "late")
        blocker.set()
        self.executor.stop()
        assert seen == ["late"]

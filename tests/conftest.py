"""Shared fakes: a deterministic scheduler and scripted speech providers."""

import os
import sys
from collections import deque

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wordbreak.event_bus import EventBus
from wordbreak.i18n import setup
from wordbreak.models import VoiceRecognitionResult
from wordbreak.scheduler import TimerHandle
from wordbreak.turn_manager import TurnManager


class ManualScheduler:
    """Scheduler driven by the test: nothing runs until run_ready/advance/run_until_idle."""

    def __init__(self):
        self.now = 0.0
        self._ready = deque()
        self._timers = []
        self._seq = 0

    def call_soon(self, callback, *args):
        self._ready.append((callback, args))

    def call_later(self, delay, callback, *args):
        handle = TimerHandle(lambda: callback(*args))
        self._seq += 1
        self._timers.append((self.now + max(0.0, delay), self._seq, handle))
        return handle

    @property
    def pending_timers(self):
        return [entry for entry in self._timers if not entry[2].cancelled]

    def run_ready(self):
        while self._ready:
            callback, args = self._ready.popleft()
            callback(*args)

    def _pop_next_timer(self, deadline=None):
        live = self.pending_timers
        if deadline is not None:
            live = [entry for entry in live if entry[0] <= deadline]
        if not live:
            return None
        entry = min(live, key=lambda e: (e[0], e[1]))
        self._timers.remove(entry)
        return entry

    def advance(self, seconds):
        deadline = self.now + seconds
        self.run_ready()
        while True:
            entry = self._pop_next_timer(deadline)
            if entry is None:
                break
            self.now = entry[0]
            entry[2]._run()
            self.run_ready()
        self.now = deadline

    def run_until_idle(self, max_steps=1000):
        """Run everything that is ready and every pending timer, in time order."""
        self.run_ready()
        for _ in range(max_steps):
            entry = self._pop_next_timer()
            if entry is None:
                return
            self.now = max(self.now, entry[0])
            entry[2]._run()
            self.run_ready()
        raise AssertionError("scheduler did not settle")


class FakeSpeechOutput:
    """Records utterances. With auto_finish, completion is posted on the next scheduler tick.

    ``fail_next`` fails the next utterance only; ``broken`` fails every one until cleared.
    """

    def __init__(self, scheduler, auto_finish=True):
        self.scheduler = scheduler
        self.auto_finish = auto_finish
        self.spoken = []
        self.stop_count = 0
        self.last_on_finished = None
        self.last_on_error = None
        self.fail_next = None
        self.broken = None
        self._token = 0

    @property
    def last(self):
        return self.spoken[-1] if self.spoken else None

    def speak(self, text, on_finished, on_error=None):
        self._token += 1
        token = self._token
        self.spoken.append(text)
        self.last_on_finished = on_finished
        self.last_on_error = on_error
        if self.broken is not None:
            self.scheduler.call_soon(self._fail, token, on_error, self.broken)
        elif self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            self.scheduler.call_soon(self._fail, token, on_error, error)
        elif self.auto_finish:
            self.scheduler.call_soon(self._complete, token, on_finished)

    def _complete(self, token, on_finished):
        if token == self._token:
            on_finished()

    def _fail(self, token, on_error, error):
        if token == self._token and on_error is not None:
            on_error(error)

    def fail_speech(self, error):
        """Fail the current utterance (manual mode)."""
        self._fail(self._token, self.last_on_error, error)

    def finish(self):
        """Complete the current utterance (manual mode)."""
        self._complete(self._token, self.last_on_finished)

    def stop(self):
        self.stop_count += 1
        self._token += 1


class FakeSpeechInput:
    """Scripted recognizer. ``leak_*`` deliver even after stop, like a misbehaving provider."""

    def __init__(self):
        self.listening = False
        self.start_count = 0
        self.stop_count = 0
        self._on_result = None
        self._on_error = None

    def start_listening(self, on_result, on_error):
        self.listening = True
        self.start_count += 1
        self._on_result = on_result
        self._on_error = on_error

    def stop_listening(self):
        self.stop_count += 1
        self.listening = False

    def say(self, text):
        assert self.listening, "not listening"
        self._on_result(VoiceRecognitionResult(text=text, is_final=True))

    def partial(self, text):
        assert self.listening, "not listening"
        self._on_result(VoiceRecognitionResult(text=text, is_final=False))

    def fail(self, error):
        assert self.listening, "not listening"
        self._on_error(error)

    def leak_final(self, text):
        self._on_result(VoiceRecognitionResult(text=text, is_final=True))

    def leak_error(self, error):
        self._on_error(error)


class TurnHarness:
    """Turn manager over fakes, with a recorder for every published event."""

    def __init__(self, auto_finish=True, cooldown_delay=0.3):
        setup("en")
        self.scheduler = ManualScheduler()
        self.output = FakeSpeechOutput(self.scheduler, auto_finish=auto_finish)
        self.input = FakeSpeechInput()
        self.bus = EventBus()
        self.events = []
        self.bus.subscribe_all(self.events.append)
        self.turn_manager = TurnManager(
            self.output,
            self.input,
            self.scheduler,
            event_bus=self.bus,
            cooldown_delay=cooldown_delay,
        )

    def settle(self):
        self.scheduler.run_until_idle()

    def reply(self, text):
        self.input.say(text)
        self.settle()

    def events_of(self, event_type):
        return [e for e in self.events if e.type is event_type]


@pytest.fixture
def harness():
    return TurnHarness()


@pytest.fixture
def manual_harness():
    """Speech completes only when the test calls output.finish()."""
    return TurnHarness(auto_finish=False)

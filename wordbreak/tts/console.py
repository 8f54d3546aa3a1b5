"""Text-mode speech output: prints prompts instead of synthesizing them."""

from typing import Callable, Optional

from wordbreak.scheduler import Scheduler, TimerHandle
from wordbreak.tts.base import FinishedCallback, SpeechErrorCallback, UtteranceTracker
from wordbreak.utils import wb_log


class ConsoleSpeechOutput:
    """Prints each utterance and reports completion after a reading delay.

    ``words_per_second`` of 0 completes on the next scheduler tick.
    """

    def __init__(self, scheduler: Scheduler, words_per_second: float = 0.0, printer: Callable[[str], None] = print):
        self.scheduler = scheduler
        self.words_per_second = words_per_second
        self.printer = printer
        self._tracker = UtteranceTracker()
        self._timer: Optional[TimerHandle] = None

    def _reading_time(self, text: str) -> float:
        if self.words_per_second <= 0:
            return 0.0
        return len(text.split()) / self.words_per_second

    def speak(self, text: str, on_finished: FinishedCallback,
              on_error: Optional[SpeechErrorCallback] = None) -> None:
        self.stop()
        utterance_id = self._tracker.begin(on_finished, on_error)
        self.printer(f"🔊 {text}")
        self._timer = self.scheduler.call_later(self._reading_time(text), self._tracker.finish, utterance_id)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._tracker.active:
            wb_log("TTS", "Console speech stopped", level="DEBUG")
        self._tracker.cancel()

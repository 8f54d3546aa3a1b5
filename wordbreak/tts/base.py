"""Shared speech output protocol and the one-shot completion guard."""

from typing import Callable, Optional, Protocol

from wordbreak.utils import wb_log

FinishedCallback = Callable[[], None]
SpeechErrorCallback = Callable[[Exception], None]


class SpeechOutputProvider(Protocol):
    """Unified interface for speech output backends."""

    def speak(self, text: str, on_finished: FinishedCallback,
              on_error: Optional[SpeechErrorCallback] = None) -> None:
        """Start speaking ``text``. Exactly one of ``on_finished`` / ``on_error`` fires.

        ``on_error`` receives a ``SpeechOutputError`` when synthesis or playback
        fails. After ``stop()`` neither callback fires.
        """
        ...

    def stop(self) -> None:
        """Interrupt speech immediately. Idempotent."""
        ...


class UtteranceTracker:
    """Hands out utterance ids so a late completion from an interrupted utterance can be recognised and dropped."""

    def __init__(self):
        self._current = 0
        self._on_finished: Optional[FinishedCallback] = None
        self._on_error: Optional[SpeechErrorCallback] = None

    def begin(self, on_finished: FinishedCallback, on_error: Optional[SpeechErrorCallback] = None) -> int:
        self._current += 1
        self._on_finished = on_finished
        self._on_error = on_error
        return self._current

    def cancel(self) -> None:
        self._current += 1
        self._on_finished = None
        self._on_error = None

    def _take(self, utterance_id: int):
        if utterance_id != self._current or self._on_finished is None:
            return None
        callbacks = (self._on_finished, self._on_error)
        self._on_finished = None
        self._on_error = None
        return callbacks

    def finish(self, utterance_id: int) -> bool:
        """Fire the completion for ``utterance_id`` if it is still current. Returns True if it fired."""
        callbacks = self._take(utterance_id)
        if callbacks is None:
            return False
        callbacks[0]()
        return True

    def fail(self, utterance_id: int, error: Exception) -> bool:
        """Report ``error`` for ``utterance_id`` if it is still current. Returns True if it was reported."""
        callbacks = self._take(utterance_id)
        if callbacks is None:
            return False
        on_finished, on_error = callbacks
        if on_error is None:
            # Callers without an error path still need the turn to move on
            wb_log("TTS", f"Utterance failed with no error handler: {error}", level="WARNING")
            on_finished()
        else:
            on_error(error)
        return True

    @property
    def active(self) -> bool:
        return self._on_finished is not None

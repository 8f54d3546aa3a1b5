"""Speech input protocol and the silence policy shared by all input providers."""

from typing import Callable, Optional, Protocol

from wordbreak.errors import RecognitionError
from wordbreak.models import VoiceRecognitionResult
from wordbreak.scheduler import Scheduler, TimerHandle
from wordbreak.utils import wb_log

ResultCallback = Callable[[VoiceRecognitionResult], None]
ErrorCallback = Callable[[Exception], None]


class SpeechInputProvider(Protocol):
    """Unified interface for speech input backends."""

    def start_listening(self, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        """Deliver zero or more partial results, then exactly one final result or error."""
        ...

    def stop_listening(self) -> None:
        """Idempotent. No callback fires after this returns."""
        ...


class RecognitionSession:
    """
    One listening session with a retriggerable silence timer.

    - before the first partial, the timer is ``initial_silence_timeout``
    - every partial re-arms it to ``silence_timeout``
    - when it fires, the last partial becomes the final result, or an error if
      nothing was heard

    All feed_* methods must be called on the scheduler's thread. Once the
    session is closed every feed_* call is a no-op.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        silence_timeout: Optional[float] = 2.0,
        initial_silence_timeout: Optional[float] = 10.0,
        on_close: Optional[Callable[["RecognitionSession"], None]] = None,
    ):
        self.scheduler = scheduler
        self._on_result = on_result
        self._on_error = on_error
        self._on_close = on_close
        self.silence_timeout = silence_timeout
        self.initial_silence_timeout = initial_silence_timeout
        self.last_partial_text = ""
        self.active = True
        self._timer: Optional[TimerHandle] = None
        self._arm(initial_silence_timeout)

    def _arm(self, timeout: Optional[float]):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if timeout is not None:
            self._timer = self.scheduler.call_later(timeout, self._on_silence)

    def feed_partial(self, text: str, confidence: Optional[float] = None):
        if not self.active:
            return
        self.last_partial_text = text
        self._arm(self.silence_timeout)
        self._on_result(VoiceRecognitionResult(text=text, is_final=False, confidence=confidence))

    def feed_final(self, text: str, confidence: Optional[float] = None):
        if not self.active:
            return
        self.close()
        self._on_result(VoiceRecognitionResult(text=text, is_final=True, confidence=confidence))

    def feed_error(self, error: Exception):
        if not self.active:
            return
        self.close()
        self._on_error(error)

    def _on_silence(self):
        if not self.active:
            return
        text = self.last_partial_text
        wb_log("STT", f"Silence timeout - delivering: '{text}'")
        self.close()
        if text.strip():
            self._on_result(VoiceRecognitionResult(text=text, is_final=True))
        else:
            self._on_error(RecognitionError("No speech detected", no_speech=True))

    def close(self):
        if not self.active:
            return
        self.active = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._on_close is not None:
            self._on_close(self)


class SessionSpeechInput:
    """Base for providers: owns the current RecognitionSession and the audio open/close hooks."""

    def __init__(
        self,
        scheduler: Scheduler,
        silence_timeout: Optional[float] = 2.0,
        initial_silence_timeout: Optional[float] = 10.0,
    ):
        self.scheduler = scheduler
        self.silence_timeout = silence_timeout
        self.initial_silence_timeout = initial_silence_timeout
        self._session: Optional[RecognitionSession] = None

    @property
    def is_listening(self) -> bool:
        return self._session is not None and self._session.active

    def start_listening(self, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        self.stop_listening()
        session = RecognitionSession(
            self.scheduler,
            on_result,
            on_error,
            silence_timeout=self.silence_timeout,
            initial_silence_timeout=self.initial_silence_timeout,
            on_close=self._session_closed,
        )
        self._session = session
        wb_log("STT", "Listening...")
        try:
            self._open_audio(session)
        except Exception as e:
            wb_log("STT", f"Failed to start listening: {e}", level="ERROR")
            session.feed_error(e if isinstance(e, RecognitionError) else RecognitionError(str(e)))

    def stop_listening(self) -> None:
        session = self._session
        if session is None:
            return
        session.close()

    def _session_closed(self, session: RecognitionSession):
        if self._session is not session:
            return
        self._session = None
        self._close_audio()
        wb_log("STT", "Stopped listening", level="DEBUG")

    def _deliver(self, session: RecognitionSession, method: str, *args):
        """Run ``session.<method>(*args)`` on the scheduler; dropped if the session has since ended."""
        def _run():
            if session is self._session:
                getattr(session, method)(*args)
        self.scheduler.call_soon(_run)

    def _open_audio(self, session: RecognitionSession) -> None:
        """Start capture for ``session``. Raise to report the failure as a recognition error."""

    def _close_audio(self) -> None:
        """Release capture resources. Called once per session."""

"""Text-mode speech input: each typed line is one final transcript."""

import sys
import threading
from typing import Optional, TextIO

from wordbreak.errors import RecognitionError
from wordbreak.scheduler import Scheduler
from wordbreak.stt.base import RecognitionSession, SessionSpeechInput
from wordbreak.utils import wb_log


class ConsoleSpeechInput(SessionSpeechInput):
    """Reads lines from a stream on a background thread.

    Lines typed while nobody is listening are discarded. End of input is
    reported to the current session as an error.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        stream: Optional[TextIO] = None,
        silence_timeout: Optional[float] = None,
        initial_silence_timeout: Optional[float] = None,
        prompt: str = "🎤 > ",
    ):
        super().__init__(scheduler, silence_timeout, initial_silence_timeout)
        self.stream = stream or sys.stdin
        self.prompt = prompt
        self._reader: Optional[threading.Thread] = None
        self._eof = False

    def _open_audio(self, session: RecognitionSession) -> None:
        if self._eof:
            raise RecognitionError("Input stream closed")
        if self.prompt:
            print(self.prompt, end="", flush=True)
        if self._reader is None:
            self._reader = threading.Thread(target=self._read_loop, name="ConsoleInput", daemon=True)
            self._reader.start()

    def _read_loop(self):
        for line in self.stream:
            self.scheduler.call_soon(self._on_line, line.rstrip("\n"))
        self.scheduler.call_soon(self._on_eof)

    def _on_line(self, line: str):
        session = self._session
        if session is None:
            wb_log("STT", f"Ignoring input while not listening: '{line}'", level="DEBUG")
            return
        session.feed_final(line)

    def _on_eof(self):
        self._eof = True
        session = self._session
        if session is not None:
            session.feed_error(RecognitionError("Input stream closed"))

#!/usr/bin/env python3
"""
Microphone speech input - sounddevice capture + Faster Whisper.

Audio is accumulated while the session is open and re-transcribed every
``partial_interval`` seconds. Each changed transcript is reported as a
partial result; the shared silence policy turns the last one into the final
result once the speaker goes quiet.
"""

import threading
import time
from typing import List, Optional

from wordbreak.errors import RecognitionError
from wordbreak.scheduler import Scheduler
from wordbreak.stt.base import RecognitionSession, SessionSpeechInput
from wordbreak.utils import wb_log

# numpy, PortAudio and Whisper are optional (the "audio" extra); a missing PortAudio raises OSError
WHISPER_AVAILABLE = False
try:
    import numpy as np
    import sounddevice as sd
    from faster_whisper import WhisperModel
    WHISPER_AVAILABLE = True
except (ImportError, OSError):
    pass

CHUNK_DURATION = 0.1         # seconds per capture block
MAX_BUFFER_SECONDS = 30.0    # a reply never needs more than this
MIN_AUDIO_FOR_PARTIAL = 0.4  # Whisper is unreliable below this


class StreamingTranscriber:
    """Thread-safe audio accumulator with incremental transcription."""

    def __init__(self, model, sample_rate: int = 16000, language: str = "en", speech_threshold: float = 0.01):
        self.model = model
        self.sample_rate = sample_rate
        self.language = language
        self.speech_threshold = speech_threshold
        self._buffer: List[np.ndarray] = []
        self._lock = threading.Lock()
        self._heard_speech = False
        self.last_transcription = ""

    def add_audio(self, chunk: "np.ndarray"):
        volume = float(np.abs(chunk).mean()) if chunk.size else 0.0
        with self._lock:
            self._buffer.append(chunk.copy())
            max_chunks = int(MAX_BUFFER_SECONDS / CHUNK_DURATION)
            if len(self._buffer) > max_chunks:
                self._buffer = self._buffer[-max_chunks:]
            if volume > self.speech_threshold:
                self._heard_speech = True

    def transcribe_partial(self) -> Optional[str]:
        """Transcribe everything captured so far. None if there is nothing worth transcribing."""
        with self._lock:
            if not self._heard_speech or not self._buffer:
                return None
            audio = np.concatenate(self._buffer)

        if len(audio) / self.sample_rate < MIN_AUDIO_FOR_PARTIAL:
            return None

        segments, _info = self.model.transcribe(
            audio,
            language=self.language,
            task="transcribe",
            beam_size=1,
            best_of=1,
            condition_on_previous_text=False,
            no_speech_threshold=0.7,
        )
        parts = [s.text for s in segments if getattr(s, "no_speech_prob", 0.0) < 0.7]
        text = " ".join(parts).strip()
        self.last_transcription = text
        return text or None

    def clear(self):
        with self._lock:
            self._buffer = []
            self._heard_speech = False
        self.last_transcription = ""


class WhisperSpeechInput(SessionSpeechInput):
    """Listens on the default (or configured) microphone while a session is open."""

    def __init__(
        self,
        scheduler: Scheduler,
        model: str = "base.en",
        device: str = "cpu",
        compute_type: str = "int8",
        language: str = "en",
        sample_rate: int = 16000,
        partial_interval: float = 0.8,
        input_device: Optional[str] = None,
        silence_timeout: Optional[float] = 2.0,
        initial_silence_timeout: Optional[float] = 10.0,
    ):
        if not WHISPER_AVAILABLE:
            raise RuntimeError(
                "faster-whisper and sounddevice are required for microphone input. "
                "Install the 'audio' extra: pip install 'wordbreak[audio]'"
            )
        super().__init__(scheduler, silence_timeout, initial_silence_timeout)
        self.sample_rate = sample_rate
        self.partial_interval = partial_interval
        self.input_device = input_device

        wb_log("STT", f"Loading Whisper model '{model}' on {device} ({compute_type})")
        start = time.time()
        whisper = WhisperModel(model, device=device, compute_type=compute_type)
        wb_log("STT", f"Whisper loaded in {time.time() - start:.2f}s")

        self.transcriber = StreamingTranscriber(whisper, sample_rate=sample_rate, language=language)
        self._stream = None
        self._worker: Optional[threading.Thread] = None
        self._worker_stop = threading.Event()

    def _open_audio(self, session: RecognitionSession) -> None:
        self.transcriber.clear()
        self._worker_stop = threading.Event()

        def audio_callback(indata, frames, time_info, status):
            if status:
                wb_log("MIC", f"Audio status: {status}", level="WARNING")
            self.transcriber.add_audio(indata[:, 0])

        try:
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=int(self.sample_rate * CHUNK_DURATION),
                device=self.input_device,
                callback=audio_callback,
            )
            self._stream.start()
        except Exception as e:
            self._stream = None
            raise RecognitionError(f"No valid microphone available: {e}") from e

        self._worker = threading.Thread(
            target=self._partial_loop,
            args=(session, self._worker_stop),
            name="WhisperPartials",
            daemon=True,
        )
        self._worker.start()

    def _partial_loop(self, session: RecognitionSession, stop_event: threading.Event):
        last_text = ""
        while not stop_event.wait(self.partial_interval):
            try:
                text = self.transcriber.transcribe_partial()
            except Exception as e:
                wb_log("STT", f"Transcription error: {e}", level="ERROR")
                self._deliver(session, "feed_error", RecognitionError(f"Transcription failed: {e}"))
                return
            if text and text != last_text:
                last_text = text
                wb_log("STT", f"Partial: {text}", level="DEBUG")
                self._deliver(session, "feed_partial", text)

    def _close_audio(self) -> None:
        self._worker_stop.set()
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as e:
                wb_log("MIC", f"Error closing input stream: {e}", level="WARNING")
        self.transcriber.clear()

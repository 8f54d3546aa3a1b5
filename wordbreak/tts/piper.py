#!/usr/bin/env python3
"""Local Piper speech output with interruptible sounddevice playback."""

import os
import threading
import time
from typing import Optional

from wordbreak import PROJECT_ROOT
from wordbreak.errors import SpeechOutputError
from wordbreak.scheduler import Scheduler
from wordbreak.tts.base import FinishedCallback, SpeechErrorCallback, UtteranceTracker
from wordbreak.utils import wb_log

# numpy, Piper and PortAudio are optional (the "audio" extra); a missing PortAudio raises OSError
PIPER_AVAILABLE = False
try:
    import numpy as np
    import sounddevice as sd
    from piper import PiperVoice
    PIPER_AVAILABLE = True
except (ImportError, OSError):
    pass

DEFAULT_MODEL_PATH = os.path.join(PROJECT_ROOT, "piper-models", "en_US-amy-medium.onnx")


class PiperSpeechOutput:
    """Synthesizes with Piper on a worker thread and plays through sounddevice.

    Completion is posted back onto the scheduler, so ``on_finished`` always runs
    on the turn executor. ``stop()`` cuts playback and drops the pending completion.
    """

    _POLL_INTERVAL = 0.05

    def __init__(self, scheduler: Scheduler, model_path: Optional[str] = None, output_device: Optional[str] = None):
        if not PIPER_AVAILABLE:
            raise RuntimeError(
                "piper-tts and sounddevice are required for Piper output. "
                "Install the 'audio' extra: pip install 'wordbreak[audio]'"
            )
        self.scheduler = scheduler
        self.model_path = model_path or DEFAULT_MODEL_PATH
        self.output_device = output_device
        self._tracker = UtteranceTracker()
        self._stop_event: Optional[threading.Event] = None

        wb_log("TTS", f"Loading Piper model: {self.model_path}")
        start = time.time()
        self.voice = PiperVoice.load(self.model_path)
        self.sample_rate = int(getattr(self.voice.config, "sample_rate", 22050))
        wb_log("TTS", f"Piper model loaded in {time.time() - start:.2f}s")

    def synthesize(self, text: str) -> "np.ndarray":
        chunks = [np.frombuffer(chunk.audio_int16_bytes, dtype=np.int16) for chunk in self.voice.synthesize(text)]
        if not chunks:
            raise SpeechOutputError(f"Piper produced no audio for: {text[:40]}")
        return np.concatenate(chunks).astype(np.float32) / 32767.0

    def speak(self, text: str, on_finished: FinishedCallback,
              on_error: Optional[SpeechErrorCallback] = None) -> None:
        self.stop()
        utterance_id = self._tracker.begin(on_finished, on_error)
        stop_event = threading.Event()
        self._stop_event = stop_event
        wb_log("TTS", f"Speaking: {text}")
        threading.Thread(
            target=self._play_utterance,
            args=(text, utterance_id, stop_event),
            name="PiperPlayback",
            daemon=True,
        ).start()

    def _play_utterance(self, text: str, utterance_id: int, stop_event: threading.Event):
        try:
            audio = self.synthesize(text)
            if stop_event.is_set():
                return
            sd.play(audio, self.sample_rate, device=self.output_device)
            output_stream = sd.get_stream()
            deadline = time.time() + len(audio) / self.sample_rate + 0.5
            while time.time() < deadline:
                if stop_event.is_set():
                    if output_stream is not None:
                        output_stream.stop()
                    return
                if output_stream is not None and not output_stream.active:
                    break
                time.sleep(self._POLL_INTERVAL)
        except Exception as e:
            wb_log("TTS", f"Playback error: {e}", level="ERROR")
            if not stop_event.is_set():
                error = e if isinstance(e, SpeechOutputError) else SpeechOutputError(str(e))
                self.scheduler.call_soon(self._tracker.fail, utterance_id, error)
            return
        if not stop_event.is_set():
            self.scheduler.call_soon(self._tracker.finish, utterance_id)

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None
        if self._tracker.active:
            wb_log("TTS", "Speech stopped")
        self._tracker.cancel()

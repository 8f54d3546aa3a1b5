"""Minimal smoke tests for Word Break modules."""

import sys
import os

# Ensure project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def test_import_utils():
    from wordbreak.utils import wb_log, setup_crash_protection
    assert callable(wb_log)
    assert callable(setup_crash_protection)


def test_spoken_text_helpers():
    from wordbreak.utils import ordinal, plural, spelled_out
    assert spelled_out("CRANE") == "C. R. A. N. E"
    assert ordinal(2) == "second"
    assert ordinal(9) == "9th"
    assert plural(1, "guess", "guesses") == "guess"
    assert plural(0, "guess", "guesses") == "guesses"
    assert plural(3, "letter") == "letters"


def test_event_bus_lifecycle():
    from wordbreak.event_bus import EventBus, EventType
    bus = EventBus()
    bus.start()
    received = []
    bus.subscribe(EventType.SYSTEM_STARTUP, lambda event: received.append(event))
    bus.publish(EventType.SYSTEM_STARTUP, {"game": "word"}, source="test", wait=True)
    assert len(received) == 1
    assert received[0].payload["game"] == "word"
    bus.stop()


def test_import_optional_audio_backends():
    from wordbreak.stt.whisper import WHISPER_AVAILABLE, WhisperSpeechInput
    from wordbreak.tts.piper import PIPER_AVAILABLE, PiperSpeechOutput
    assert isinstance(WHISPER_AVAILABLE, bool)
    assert isinstance(PIPER_AVAILABLE, bool)
    assert WhisperSpeechInput is not None
    assert PiperSpeechOutput is not None


def test_import_games():
    from wordbreak.games.echo_test import EchoTestGame
    from wordbreak.games.word_guess import WordGuessGame
    assert EchoTestGame is not None
    assert WordGuessGame is not None


def test_service_args():
    from wordbreak.service import parse_args
    args = parse_args(["--game", "echo", "--text", "--seed", "7"])
    assert args.game == "echo"
    assert args.text is True
    assert args.seed == 7
    assert args.config.endswith("config.yaml")


def test_service_builds_console_providers():
    from wordbreak.config_loader import WordBreakConfig
    from wordbreak.service import WordBreakService
    from wordbreak.stt.console import ConsoleSpeechInput
    from wordbreak.tts.console import ConsoleSpeechOutput

    service = WordBreakService(WordBreakConfig(seed=1), game="word")
    assert isinstance(service.speech_output, ConsoleSpeechOutput)
    assert isinstance(service.speech_input, ConsoleSpeechInput)
    assert not service.executor.is_running


def test_crash_report_names_thread_and_error():
    from wordbreak.utils import crash_report
    try:
        raise ValueError("target has 4 letters")
    except ValueError:
        report = crash_report(*sys.exc_info(), where="TurnExecutor")
    assert "Thread: TurnExecutor" in report
    assert "Error: ValueError: target has 4 letters" in report
    assert "Live threads:" in report


def test_service_finishes_only_after_goodbye_is_spoken():
    from wordbreak.config_loader import WordBreakConfig
    from wordbreak.event_bus import EventType
    from wordbreak.service import WordBreakService
    from wordbreak.state_machine import TurnState

    service = WordBreakService(WordBreakConfig(seed=1), game="echo")
    bus = service.event_bus

    # A prompt that was already in flight when the player quit
    bus.publish(EventType.SPEECH_FINISHED, {"turn_id": 3, "listen_after_speech": True})
    service.game._exited = True
    bus.publish(EventType.TURN_STATE_CHANGED, {"old_state": TurnState.PROCESSING, "new_state": TurnState.IDLE})
    bus.publish(EventType.SPEECH_FINISHED, {"turn_id": 3, "listen_after_speech": True})
    assert not service.finished.is_set()

    bus.publish(EventType.SPEECH_FINISHED, {"turn_id": 4, "listen_after_speech": False})
    assert service.finished.is_set()


def test_service_finishes_when_goodbye_cannot_be_spoken():
    from wordbreak.config_loader import WordBreakConfig
    from wordbreak.event_bus import EventType
    from wordbreak.service import WordBreakService

    service = WordBreakService(WordBreakConfig(seed=1), game="echo")
    service.game._exited = True
    service.event_bus.publish(EventType.SPEECH_FAILED,
                              {"turn_id": 4, "listen_after_speech": False, "error": "audio device lost"})
    assert service.finished.is_set()

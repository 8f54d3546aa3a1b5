#!/usr/bin/env python3
"""
Word Break Service.

Builds the object graph once at start-up (executor, event bus, speech
providers, parser, turn manager, game), wires the console state display to
the event bus, and runs until the player says goodbye or Ctrl+C.
"""

import argparse
import os
import sys
import threading
import traceback
from typing import Optional

from wordbreak import PROJECT_ROOT, __version__

# Load .env before any os.getenv() calls
from dotenv import load_dotenv
load_dotenv(os.path.join(PROJECT_ROOT, '.env'))

from wordbreak import i18n
from wordbreak.commands import CommandParser
from wordbreak.config_loader import WordBreakConfig, load_config_yaml
from wordbreak.event_bus import Event, EventBus, EventType
from wordbreak.games.echo_test import EchoTestGame
from wordbreak.games.word_guess import WordGuessGame
from wordbreak.scheduler import SerialExecutor
from wordbreak.state_machine import TurnState
from wordbreak.stt.console import ConsoleSpeechInput
from wordbreak.tts.console import ConsoleSpeechOutput
from wordbreak.turn_manager import TurnManager
from wordbreak.utils import set_log_level, setup_crash_protection, wb_log
from wordbreak.words import WordLists

_STATE_ICONS = {
    TurnState.IDLE: "⏸",
    TurnState.SPEAKING: "🔊",
    TurnState.LISTENING: "🎤",
    TurnState.PROCESSING: "⚙",
}


def build_speech_output(config: WordBreakConfig, scheduler):
    if config.tts_provider == "piper":
        from wordbreak.tts.piper import PiperSpeechOutput
        return PiperSpeechOutput(scheduler, model_path=config.tts_piper_model_path,
                                 output_device=config.output_device)
    if config.tts_provider != "console":
        wb_log("CONFIG", f"Unknown TTS provider '{config.tts_provider}', using console", level="WARNING")
    return ConsoleSpeechOutput(scheduler, words_per_second=config.tts_words_per_second)


def build_speech_input(config: WordBreakConfig, scheduler):
    if config.stt_provider == "whisper":
        from wordbreak.stt.whisper import WhisperSpeechInput
        return WhisperSpeechInput(
            scheduler,
            model=config.stt_model,
            device=config.stt_device,
            compute_type=config.stt_compute_type,
            language=config.stt_language,
            sample_rate=config.stt_sample_rate,
            partial_interval=config.stt_partial_interval,
            input_device=config.input_device,
            silence_timeout=config.silence_timeout,
            initial_silence_timeout=config.initial_silence_timeout,
        )
    if config.stt_provider != "console":
        wb_log("CONFIG", f"Unknown STT provider '{config.stt_provider}', using console", level="WARNING")
    # Typed lines are already final; no silence policy needed
    return ConsoleSpeechInput(scheduler)


class WordBreakService:
    """Owns every long-lived component. Nothing here is a process-wide singleton."""

    def __init__(self, config: WordBreakConfig, game: str = "word"):
        self.config = config
        self.game_name = game

        i18n.setup(config.language)
        set_log_level(config.log_level)

        self.executor = SerialExecutor()
        self.event_bus = EventBus()
        self.speech_output = build_speech_output(config, self.executor)
        self.speech_input = build_speech_input(config, self.executor)
        self.turn_manager = TurnManager(
            self.speech_output,
            self.speech_input,
            self.executor,
            command_parser=CommandParser(),
            event_bus=self.event_bus,
            cooldown_delay=config.cooldown_delay,
        )

        if game == "echo":
            self.game = EchoTestGame(self.turn_manager, max_consecutive_failures=config.max_consecutive_failures)
        else:
            words = WordLists(config.answers_path, config.allowed_path, seed=config.seed)
            self.game = WordGuessGame(
                self.turn_manager,
                words,
                max_guesses=config.max_guesses,
                max_consecutive_failures=config.max_consecutive_failures,
                event_bus=self.event_bus,
            )

        self.finished = threading.Event()
        self.event_bus.subscribe(EventType.TURN_STATE_CHANGED, self._on_state_changed)
        self.event_bus.subscribe(EventType.SPEECH_FINISHED, self._on_speech_done)
        self.event_bus.subscribe(EventType.SPEECH_FAILED, self._on_speech_done)

    def _on_state_changed(self, event: Event):
        new_state = event.get('new_state')
        wb_log("UI", f"{_STATE_ICONS.get(new_state, '?')} {new_state.value}", level="DEBUG")

    def _on_speech_done(self, event: Event):
        # Only the goodbye is spoken without listening afterwards; stop once it is out
        if not event.get('listen_after_speech', True) and self.game.has_exited:
            self.finished.set()

    def start(self):
        self.event_bus.start()
        self.executor.start()
        self.event_bus.publish(EventType.SYSTEM_STARTUP, {'game': self.game_name}, source='service')
        self.executor.call_soon(self.game.start)

    def stop(self):
        wb_log("WORDBREAK", "Stopping...")
        if self.executor.is_running:
            self.executor.call_soon(self.turn_manager.cancel_turn)
        self.executor.stop()
        self.event_bus.publish(EventType.SYSTEM_SHUTDOWN, {}, source='service', wait=True)
        self.event_bus.stop()

    def run_forever(self):
        """Block until the game ends, the executor dies or Ctrl+C."""
        while not self.finished.wait(1.0):
            if not self.executor.is_running:
                wb_log("WATCHDOG", "Turn executor stopped unexpectedly", level="ERROR")
                break


def print_config_banner(config: WordBreakConfig, game: str):
    wb_log("WORDBREAK", "=" * 50)
    wb_log("WORDBREAK", f"Word Break v{__version__} - {game}")
    wb_log("WORDBREAK", f"TTS: {config.tts_provider} | STT: {config.stt_provider} | language: {config.language}")
    wb_log("WORDBREAK", f"Cooldown: {config.cooldown_delay}s | silence: {config.silence_timeout}s"
                        f" (initial {config.initial_silence_timeout}s) | max guesses: {config.max_guesses}")
    wb_log("WORDBREAK", "=" * 50)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="wordbreak", description="Voice-only word guessing game")
    parser.add_argument("--config", default=os.path.join(PROJECT_ROOT, "config.yaml"), help="Path to config.yaml")
    parser.add_argument("--game", choices=("word", "echo"), default="word", help="Which game to run")
    parser.add_argument("--text", action="store_true", help="Force console input/output instead of audio")
    parser.add_argument("--seed", type=int, default=None, help="Seed for picking answers")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_crash_protection()

    service: Optional[WordBreakService] = None
    try:
        config = WordBreakConfig.from_yaml(load_config_yaml(args.config))
        if args.text:
            config.tts_provider = "console"
            config.stt_provider = "console"
        if args.seed is not None:
            config.seed = args.seed
        print_config_banner(config, args.game)

        service = WordBreakService(config, game=args.game)
        service.start()
        service.run_forever()
        service.stop()
    except KeyboardInterrupt:
        wb_log("WORDBREAK", "[BYE] Interrupted")
        if service is not None:
            service.stop()
    except Exception as e:
        wb_log("CRITICAL", f"Unhandled exception in main: {e}", level="ERROR")
        wb_log("CRITICAL", traceback.format_exc(), level="ERROR")
        if service is not None:
            service.stop()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Word Guess - the voice-only five-letter word game.

Sits on top of the TurnManager: every step is "speak a message, wait for a
reply, branch on it". The controller tracks which sub-mode the reply belongs
to (ACTIVE, THINKING, END_GAME) and owns the target word and guess history.
"""

import re
from enum import Enum
from typing import Callable, List, Optional

from wordbreak.event_bus import EventBus, EventType
from wordbreak.i18n import phrases, t
from wordbreak.models import GlobalCommand, InputSpec, InputType, NormalizationProfile, ParsedCommand
from wordbreak.text_processing import contains_any_phrase, is_word_shaped
from wordbreak.turn_manager import TurnManager
from wordbreak.utils import ordinal, plural, spelled_out, wb_log
from wordbreak.word_guess import WORD_LENGTH, GamePhase, GameStatus, GuessResult, evaluate
from wordbreak.words import KnownWords

DEFAULT_MAX_GUESSES = 6
DEFAULT_MAX_FAILURES = 3

# Recall keywords are plain substring search over the normalized reply
_RECAP_KEYWORDS = ("RECAP", "ALL GUESS", "MY GUESS", "SUMMARY", "READ THEM", "READ BACK", "SO FAR")
_EMPTY_HISTORY_KEYWORDS = ("WHAT", "MY", "RECAP", "ALL")
_LAST_GUESS_KEYWORDS = ("LAST GUESS", "PREVIOUS GUESS")
_ORDINAL_WORDS = {
    "FIRST": 1, "SECOND": 2, "THIRD": 3, "FOURTH": 4, "FIFTH": 5,
    "SIXTH": 6, "SEVENTH": 7, "EIGHTH": 8, "NINTH": 9, "TENTH": 10,
}
_CARDINAL_WORDS = {
    "ONE": 1, "TWO": 2, "THREE": 3, "FOUR": 4, "FIVE": 5,
    "SIX": 6, "SEVEN": 7, "EIGHT": 8, "NINE": 9, "TEN": 10,
}
_RECALL_TOKEN = re.compile(r"\d+|[A-Z]+")


class DialogueMode(Enum):
    ACTIVE = "active"
    THINKING = "thinking"
    END_GAME = "end_game"


def word_input_spec() -> InputSpec:
    return InputSpec(
        accepted_input_types=frozenset({InputType.WORD, InputType.OPEN_ENDED}),
        normalization_profile=NormalizationProfile.phonetic_profile(),
    )


def open_input_spec() -> InputSpec:
    return InputSpec(accepted_input_types=frozenset({InputType.OPEN_ENDED}))


class WordGuessGame:
    """Dialogue controller for one player session (any number of rounds)."""

    def __init__(
        self,
        turn_manager: TurnManager,
        words: KnownWords,
        max_guesses: int = DEFAULT_MAX_GUESSES,
        max_consecutive_failures: int = DEFAULT_MAX_FAILURES,
        event_bus: Optional[EventBus] = None,
    ):
        self.turn_manager = turn_manager
        self.words = words
        self.max_guesses = max_guesses
        self.max_consecutive_failures = max_consecutive_failures
        self.events = event_bus or turn_manager.events

        self._target_word = ""
        self._guess_history: List[GuessResult] = []
        self._status = GameStatus.playing()
        self._mode = DialogueMode.ACTIVE
        self._last_message = ""
        self._failures = 0
        self._exited = False

        self._thinking_phrases = phrases("word_guess.phrases.thinking")
        self._resume_phrases = phrases("word_guess.phrases.resume")
        self._play_again_phrases = phrases("word_guess.phrases.play_again")
        self._decline_phrases = phrases("word_guess.phrases.decline")

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def mode(self) -> DialogueMode:
        return self._mode

    @property
    def status(self) -> GameStatus:
        return self._status

    @property
    def phase(self) -> GamePhase:
        return self._status.phase

    @property
    def target_word(self) -> str:
        return self._target_word

    @property
    def guess_history(self) -> List[GuessResult]:
        return list(self._guess_history)

    @property
    def remaining_guesses(self) -> int:
        return self.max_guesses - len(self._guess_history)

    @property
    def has_exited(self) -> bool:
        """True once the player has quit and the goodbye has been queued."""
        return self._exited

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        wb_log("GAME", "Starting new game")
        self._exited = False
        self._reset_game()
        self._speak_and_listen(t("word_guess.greeting", max_guesses=self.max_guesses))

    def _reset_game(self):
        self._target_word = self.words.random_answer().upper()
        self._guess_history = []
        self._status = GameStatus.playing()
        self._failures = 0
        wb_log("GAME", f"Target word: {self._target_word}", level="DEBUG")
        self.events.publish(EventType.GAME_STARTED, {'max_guesses': self.max_guesses}, source='word_guess')

    # ------------------------------------------------------------------
    # Turn plumbing
    # ------------------------------------------------------------------

    def _ask(self, message: str, mode: DialogueMode, spec: InputSpec, handler: Callable[[ParsedCommand], None],
             remember: bool = True):
        if remember:
            self._last_message = message
        if mode is not self._mode:
            wb_log("GAME", f"Mode {self._mode.value} → {mode.value}")
            self.events.publish(EventType.DIALOGUE_MODE_CHANGED, {'old_mode': self._mode, 'new_mode': mode},
                                source='word_guess')
            self._mode = mode

        def on_result(parsed: ParsedCommand):
            self._failures = 0
            handler(parsed)

        def on_error(error: Exception):
            self._on_turn_failed(error, mode, spec, handler)

        self.turn_manager.begin_turn(message, spec, listen_after_speech=True, on_result=on_result, on_error=on_error)

    def _speak_and_listen(self, message: str):
        self._ask(message, DialogueMode.ACTIVE, word_input_spec(), self._handle_input)

    def _ask_thinking(self, message: str, remember: bool = True):
        self._ask(message, DialogueMode.THINKING, open_input_spec(), self._handle_thinking_input, remember)

    def _ask_end_game(self, message: str, remember: bool = True):
        self._ask(message, DialogueMode.END_GAME, open_input_spec(), self._handle_end_game_input, remember)

    def _on_turn_failed(self, error: Exception, mode: DialogueMode, spec: InputSpec,
                        handler: Callable[[ParsedCommand], None]):
        self._failures += 1
        wb_log("GAME", f"Turn failed ({self._failures}/{self.max_consecutive_failures}): {error}", level="WARNING")
        if self._failures >= self.max_consecutive_failures:
            self._say_goodbye()
            return
        # Re-ask the last real prompt in the same mode; the apology itself is never remembered
        self._ask(t("word_guess.not_heard", prompt=self._last_message), mode, spec, handler, remember=False)

    # ------------------------------------------------------------------
    # ACTIVE
    # ------------------------------------------------------------------

    def _handle_input(self, parsed: ParsedCommand):
        upper = parsed.normalized_input.upper()

        if self._is_thinking_phrase(upper):
            self._enter_thinking_mode()
            return

        recall = self._handle_recall_request(upper)
        if recall is not None:
            self._speak_and_listen(recall)
            return

        if parsed.global_command is not None:
            self._handle_global_command(parsed.global_command)
            return

        guess = parsed.normalized_input
        if len(guess) != WORD_LENGTH:
            self._speak_and_listen(t("word_guess.validation.length"))
            return
        if not guess.isalpha():
            self._speak_and_listen(t("word_guess.validation.letters"))
            return
        if not self.words.is_valid_guess(guess):
            self._speak_and_listen(t("word_guess.validation.unknown", word=spelled_out(guess)))
            return

        self._process_guess(guess)

    def _process_guess(self, guess: str):
        result = evaluate(guess, self._target_word)
        self._guess_history.append(result)
        guess_number = len(self._guess_history)

        wb_log("GAME", f"Guess {guess_number}: {result.guess} -> {[r.value for r in result.results]}")
        self.events.publish(
            EventType.GUESS_EVALUATED,
            {'guess': result.guess, 'results': result.results, 'number': guess_number},
            source='word_guess',
        )

        if result.is_all_correct:
            self._status = GameStatus.won(guess_number)
            self._announce_win(guess_number)
        elif guess_number >= self.max_guesses:
            self._status = GameStatus.lost(self._target_word)
            self._announce_loss()
        else:
            remaining = self.max_guesses - guess_number
            self._speak_and_listen(t(
                "word_guess.feedback",
                feedback=result.spoken_feedback(),
                number=guess_number,
                remaining=remaining,
                guess_word=plural(remaining, "guess", "guesses"),
            ))

    def _announce_win(self, guess_count: int):
        self._game_ended()
        self._ask_end_game(t(
            "word_guess.win",
            word=spelled_out(self._target_word),
            count=guess_count,
            guess_word=plural(guess_count, "guess", "guesses"),
        ))

    def _announce_loss(self):
        self._game_ended()
        self._ask_end_game(t("word_guess.loss", word=spelled_out(self._target_word)))

    def _game_ended(self):
        wb_log("GAME", f"Game over: {self._status.phase.value} ({self._target_word})")
        self.events.publish(
            EventType.GAME_ENDED,
            {'phase': self._status.phase, 'answer': self._target_word, 'guesses': len(self._guess_history)},
            source='word_guess',
        )

    # ------------------------------------------------------------------
    # Global commands
    # ------------------------------------------------------------------

    def _handle_global_command(self, command: GlobalCommand):
        wb_log("GAME", f"Command: {command.value}")
        if command is GlobalCommand.QUIT:
            self._say_goodbye()
        elif command is GlobalCommand.REPEAT:
            self._speak_and_listen(self._last_message)
        elif command is GlobalCommand.HELP:
            self._speak_and_listen(t("word_guess.help"))
        elif command is GlobalCommand.RULES:
            self._speak_and_listen(t("word_guess.rules", max_guesses=self.max_guesses))
        elif command is GlobalCommand.HINT:
            self._speak_and_listen(self.build_hint())
        elif command is GlobalCommand.GIVE_UP:
            self._give_up()
        elif command is GlobalCommand.STATS:
            self._speak_and_listen(t("word_guess.stats"))

    def build_hint(self) -> str:
        """Reveal the lowest-indexed letter no guess has placed correctly yet."""
        if not self._guess_history:
            body = t("word_guess.hint.first_letter", letter=self._target_word[0])
        else:
            revealed = set()
            for result in self._guess_history:
                revealed.update(result.correct_positions())
            unrevealed = [i for i in range(WORD_LENGTH) if i not in revealed]
            if unrevealed:
                position = unrevealed[0]
                body = t("word_guess.hint.position", position=ordinal(position + 1),
                         letter=self._target_word[position])
            else:
                body = t("word_guess.hint.all_known")
        return f"{t('word_guess.hint.prefix')} {body} {t('word_guess.hint.suffix')}"

    def _give_up(self):
        self._status = GameStatus.lost(self._target_word)
        self._game_ended()
        self._ask_end_game(t("word_guess.give_up", word=spelled_out(self._target_word)))

    def _say_goodbye(self):
        wb_log("GAME", "Player left")
        self._exited = True
        self.turn_manager.begin_turn(t("word_guess.goodbye"), InputSpec(), listen_after_speech=False)

    # ------------------------------------------------------------------
    # Recall
    # ------------------------------------------------------------------

    def _handle_recall_request(self, text: str) -> Optional[str]:
        """Spoken answer if ``text`` asks about earlier guesses, else None."""
        if not self._guess_history:
            if "GUESS" in text and any(k in text for k in _EMPTY_HISTORY_KEYWORDS):
                return t("word_guess.recall.none_yet")
            return None

        if any(k in text for k in _RECAP_KEYWORDS):
            return self.recap_all_guesses()

        number = self._extract_guess_number(text)
        if number is not None:
            return self.recall_guess(number)

        if any(k in text for k in _LAST_GUESS_KEYWORDS):
            return self.recall_guess(len(self._guess_history))

        return None

    @staticmethod
    def _extract_guess_number(text: str) -> Optional[int]:
        if "GUESS" not in text and "NUMBER" not in text:
            return None
        # Whole tokens only; range checks against the history happen in recall_guess
        tokens = _RECALL_TOKEN.findall(text)
        for token in tokens:
            if token in _ORDINAL_WORDS:
                return _ORDINAL_WORDS[token]
        for token in tokens:
            if token.isdigit():
                return int(token)
            if token in _CARDINAL_WORDS:
                return _CARDINAL_WORDS[token]
        return None

    def recall_guess(self, number: int) -> str:
        count = len(self._guess_history)
        if number > count:
            return t("word_guess.recall.only_made", count=count, guess_word=plural(count, "guess", "guesses"))
        if number < 1:
            return t("word_guess.prompt_guess")
        result = self._guess_history[number - 1]
        return t("word_guess.recall.single", number=number, word=spelled_out(result.guess),
                 feedback=result.spoken_feedback())

    def recap_all_guesses(self) -> str:
        parts = [
            t("word_guess.recall.recap_item", number=i, word=spelled_out(result.guess),
              feedback=result.spoken_feedback())
            for i, result in enumerate(self._guess_history, start=1)
        ]
        remaining = self.remaining_guesses
        parts.append(t("word_guess.recall.recap_tail", remaining=remaining,
                       guess_word=plural(remaining, "guess", "guesses")))
        return " ".join(parts)

    # ------------------------------------------------------------------
    # THINKING
    # ------------------------------------------------------------------

    def _is_thinking_phrase(self, text: str) -> bool:
        return contains_any_phrase(text, self._thinking_phrases)

    def _is_resume_phrase(self, text: str) -> bool:
        return contains_any_phrase(text, self._resume_phrases)

    def _enter_thinking_mode(self):
        if not self._guess_history:
            message = t("word_guess.thinking.enter_first")
        else:
            remaining = self.remaining_guesses
            message = t("word_guess.thinking.enter", remaining=remaining,
                        guess_word=plural(remaining, "guess", "guesses"))
        self._ask_thinking(message)

    def _handle_thinking_input(self, parsed: ParsedCommand):
        upper = parsed.normalized_input.upper()

        if parsed.global_command is GlobalCommand.QUIT:
            self._say_goodbye()
            return

        if parsed.global_command is GlobalCommand.REPEAT:
            self._ask_thinking(self._last_message)
            return

        recall = self._handle_recall_request(upper)
        if recall is not None:
            self._ask_thinking(recall)
            return

        if self._is_thinking_phrase(upper):
            self._ask_thinking(t("word_guess.thinking.still"), remember=False)
            return

        if self._is_resume_phrase(upper):
            self._speak_and_listen(t("word_guess.prompt_guess"))
            return

        if is_word_shaped(upper, WORD_LENGTH):
            # Said the guess straight away
            self._handle_input(parsed)
            return

        self._ask_thinking(t("word_guess.prompt_guess"))

    # ------------------------------------------------------------------
    # END_GAME
    # ------------------------------------------------------------------

    def _handle_end_game_input(self, parsed: ParsedCommand):
        if parsed.global_command is GlobalCommand.QUIT:
            self._say_goodbye()
            return

        if parsed.global_command is GlobalCommand.REPEAT:
            self._ask_end_game(self._last_message)
            return

        upper = parsed.normalized_input.upper()

        if contains_any_phrase(upper, self._play_again_phrases):
            self.start()
            return

        if contains_any_phrase(upper, self._decline_phrases):
            self._say_goodbye()
            return

        self._ask_end_game(t("word_guess.play_or_quit"), remember=False)


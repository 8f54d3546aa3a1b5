#!/usr/bin/env python3
"""Guess scoring for the word game and the result types it produces."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from wordbreak.errors import InvalidGuessError

WORD_LENGTH = 5


class LetterResult(Enum):
    CORRECT = "green"   # right letter, right spot
    PRESENT = "yellow"  # right letter, wrong spot
    ABSENT = "gray"     # not in the word

    @property
    def spoken_description(self) -> str:
        return self.value


@dataclass(frozen=True)
class GuessResult:
    guess: str
    results: Tuple[LetterResult, ...]

    @property
    def is_all_correct(self) -> bool:
        return all(r is LetterResult.CORRECT for r in self.results)

    def correct_positions(self) -> Tuple[int, ...]:
        return tuple(i for i, r in enumerate(self.results) if r is LetterResult.CORRECT)

    def spoken_feedback(self) -> str:
        """'S is green. T is yellow. A is gray. R is green. E is green.'"""
        parts = [f"{letter} is {result.spoken_description}" for letter, result in zip(self.guess, self.results)]
        return ". ".join(parts) + "."


class GamePhase(Enum):
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"


@dataclass(frozen=True)
class GameStatus:
    """Phase tag plus its payload: guess count for WON, the answer for LOST."""
    phase: GamePhase = GamePhase.PLAYING
    guess_count: Optional[int] = None
    answer: Optional[str] = None

    @classmethod
    def playing(cls) -> "GameStatus":
        return cls(GamePhase.PLAYING)

    @classmethod
    def won(cls, guess_count: int) -> "GameStatus":
        return cls(GamePhase.WON, guess_count=guess_count)

    @classmethod
    def lost(cls, answer: str) -> "GameStatus":
        return cls(GamePhase.LOST, answer=answer)


def evaluate(guess: str, target: str) -> GuessResult:
    """
    Score ``guess`` against ``target`` with the standard two-pass rule.

    Greens are taken first and consume their letter from the target pool, then
    yellows consume what is left, so a letter is never credited more times than
    it occurs in the target.

    Raises:
        InvalidGuessError: either string is not exactly WORD_LENGTH characters.
    """
    guess_letters = guess.upper()
    target_letters = target.upper()

    if len(guess_letters) != WORD_LENGTH or len(target_letters) != WORD_LENGTH:
        raise InvalidGuessError(
            f"Both guess and target must be {WORD_LENGTH} letters (got {guess!r}, {target!r})"
        )

    results = [LetterResult.ABSENT] * WORD_LENGTH
    remaining = list(target_letters)

    for i in range(WORD_LENGTH):
        if guess_letters[i] == target_letters[i]:
            results[i] = LetterResult.CORRECT
            remaining.remove(guess_letters[i])

    for i in range(WORD_LENGTH):
        if results[i] is LetterResult.CORRECT:
            continue
        if guess_letters[i] in remaining:
            results[i] = LetterResult.PRESENT
            remaining.remove(guess_letters[i])

    return GuessResult(guess=guess_letters, results=tuple(results))

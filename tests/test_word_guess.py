"""Tests for guess scoring."""

import pytest

from wordbreak.errors import InvalidGuessError
from wordbreak.word_guess import GameStatus, GamePhase, LetterResult, evaluate

C, P, A = LetterResult.CORRECT, LetterResult.PRESENT, LetterResult.ABSENT


class TestEvaluate:
    @pytest.mark.parametrize("word", ["APPLE", "LLAMA", "crane", "Sloth"])
    def test_exact_match_is_all_correct(self, word):
        result = evaluate(word, word.upper())
        assert result.is_all_correct
        assert result.results == (C, C, C, C, C)

    def test_duplicate_letters_credited_once(self):
        result = evaluate("LLAMA", "ALLOW")
        assert result.results == (P, C, P, A, A)
        assert not result.is_all_correct

    def test_green_consumes_before_yellow(self):
        # THREE has two Es; the green at index 4 takes one, so only one yellow is left
        assert evaluate("EERIE", "THREE").results == (P, A, C, A, C)

    def test_grape_against_apple(self):
        assert evaluate("GRAPE", "APPLE").results == (A, A, P, P, C)

    def test_case_insensitive(self):
        assert evaluate("apple", "APPLE").guess == "APPLE"
        assert evaluate("APPLE", "apple").is_all_correct

    @pytest.mark.parametrize("guess, target", [
        ("APP", "APPLE"),
        ("APPLES", "APPLE"),
        ("APPLE", "APP"),
        ("", "APPLE"),
    ])
    def test_wrong_length_is_invalid(self, guess, target):
        with pytest.raises(InvalidGuessError):
            evaluate(guess, target)

    def test_invalid_guess_is_value_error(self):
        with pytest.raises(ValueError):
            evaluate("X", "APPLE")


class TestGuessResult:
    def test_spoken_feedback(self):
        result = evaluate("CRANE", "APPLE")
        assert result.spoken_feedback() == "C is gray. R is gray. A is yellow. N is gray. E is green."

    def test_correct_positions(self):
        assert evaluate("ZZPZZ", "APPLE").correct_positions() == (2,)


class TestGameStatus:
    def test_variants(self):
        assert GameStatus.playing().phase is GamePhase.PLAYING
        assert GameStatus.won(3) == GameStatus(GamePhase.WON, guess_count=3)
        assert GameStatus.lost("APPLE").answer == "APPLE"

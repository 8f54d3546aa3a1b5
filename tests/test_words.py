"""Tests for the word list loader."""

import pytest

from wordbreak.errors import WordListError
from wordbreak.words import WordLists, load_word_file


class TestWordLists:
    def test_bundled_lists_load(self):
        words = WordLists(seed=1)
        assert "APPLE" in words.answers
        assert words.is_valid_guess("apple")
        assert words.is_valid_guess("SLATE")
        assert not words.is_valid_guess("QWXYZ")
        assert len(words.random_answer()) == 5

    def test_answers_are_always_valid_guesses(self, tmp_path):
        answers = tmp_path / "answers.txt"
        answers.write_text("crane\n")
        allowed = tmp_path / "allowed.txt"
        allowed.write_text("slate\n")
        words = WordLists(str(answers), str(allowed))
        assert words.is_valid_guess("CRANE")
        assert words.is_valid_guess("SLATE")
        assert words.random_answer() == "CRANE"

    def test_malformed_lines_skipped(self, tmp_path):
        path = tmp_path / "words.txt"
        path.write_text("# comment\n\napple\nfig\nbanana\nc4ake\n  LEMON  \n")
        assert load_word_file(str(path)) == ["APPLE", "LEMON"]

    def test_missing_answers_file(self, tmp_path):
        with pytest.raises(WordListError):
            WordLists(str(tmp_path / "nope.txt"))

    def test_empty_answers(self, tmp_path):
        path = tmp_path / "answers.txt"
        path.write_text("# nothing here\n")
        with pytest.raises(WordListError):
            WordLists(str(path))

    def test_missing_allowed_file_is_tolerated(self, tmp_path):
        answers = tmp_path / "answers.txt"
        answers.write_text("apple\n")
        words = WordLists(str(answers), str(tmp_path / "missing.txt"))
        assert words.allowed == frozenset({"APPLE"})

    def test_seeded_choice_is_repeatable(self):
        first = WordLists(seed=7)
        second = WordLists(seed=7)
        assert [first.random_answer() for _ in range(5)] == [second.random_answer() for _ in range(5)]

    def test_from_words(self):
        words = WordLists.from_words(["apple"], allowed=["grape"])
        assert words.random_answer() == "APPLE"
        assert words.is_valid_guess("GRAPE")
        with pytest.raises(WordListError):
            WordLists.from_words([])

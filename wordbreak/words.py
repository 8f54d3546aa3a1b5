"""Known-words source for the word game.

Word lists are plain text files, one five-letter word per line, in
wordbreak/data/. Every answer is also an accepted guess.
"""

import os
import random
from typing import FrozenSet, List, Optional, Protocol

from wordbreak.errors import WordListError
from wordbreak.utils import wb_log
from wordbreak.word_guess import WORD_LENGTH

_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")
DEFAULT_ANSWERS_PATH = os.path.join(_DATA_DIR, "answers.txt")
DEFAULT_ALLOWED_PATH = os.path.join(_DATA_DIR, "allowed.txt")


class KnownWords(Protocol):
    """What the dialogue controller needs from a dictionary."""

    def is_valid_guess(self, word: str) -> bool:
        ...

    def random_answer(self) -> str:
        ...


def load_word_file(path: str) -> List[str]:
    """Read a word list, skipping blanks, comments and anything not five letters."""
    if not os.path.exists(path):
        raise WordListError(f"Word list not found: {path}")

    words = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            word = line.strip().upper()
            if not word or word.startswith("#"):
                continue
            if len(word) != WORD_LENGTH or not word.isalpha():
                wb_log("WORDS", f"Skipping malformed entry '{word}' in {os.path.basename(path)}", level="WARNING")
                continue
            words.append(word)
    return words


class WordLists:
    """Answer pool plus accepted-guess dictionary loaded from text files."""

    def __init__(
        self,
        answers_path: Optional[str] = None,
        allowed_path: Optional[str] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.answers_path = answers_path or DEFAULT_ANSWERS_PATH
        self.allowed_path = allowed_path or DEFAULT_ALLOWED_PATH
        self._rng = rng or random.Random(seed)

        self.answers: List[str] = load_word_file(self.answers_path)
        if not self.answers:
            raise WordListError(f"No answers in {self.answers_path}")

        allowed = set(self.answers)
        if os.path.exists(self.allowed_path):
            allowed.update(load_word_file(self.allowed_path))
        else:
            wb_log("WORDS", f"Allowed-guess list not found: {self.allowed_path}", level="WARNING")
        self.allowed: FrozenSet[str] = frozenset(allowed)

        wb_log("WORDS", f"Loaded {len(self.answers)} answers, {len(self.allowed)} accepted guesses")

    @classmethod
    def from_words(cls, answers, allowed=(), seed: Optional[int] = None) -> "WordLists":
        """Build from in-memory lists instead of files."""
        lists = cls.__new__(cls)
        lists.answers_path = None
        lists.allowed_path = None
        lists._rng = random.Random(seed)
        lists.answers = [w.upper() for w in answers]
        if not lists.answers:
            raise WordListError("Answer list is empty")
        lists.allowed = frozenset(lists.answers) | frozenset(w.upper() for w in allowed)
        return lists

    def is_valid_guess(self, word: str) -> bool:
        return word.upper() in self.allowed

    def random_answer(self) -> str:
        return self._rng.choice(self.answers)

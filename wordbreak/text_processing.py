#!/usr/bin/env python3
"""Pure text helpers: transcript normalization and keyword matching."""

import re
from typing import Dict, Iterable, Optional

from wordbreak.models import InputSpec

# Speech recognizers tend to hear number words as their homophones.
PHONETIC_FIXES: Dict[str, str] = {
    "WON": "ONE",
    "TOO": "TWO",
    "FOR": "FOUR",
    "ATE": "EIGHT",
}

_WHITESPACE_RUN = re.compile(r"\s+")


def _replace_tokens(text: str, mapping: Dict[str, str]) -> str:
    """Replace whole space-separated tokens; substrings of longer words are left alone."""
    if not mapping or not text:
        return text
    return " ".join(mapping.get(token, token) for token in text.split(" "))


class InputNormalizer:
    """Deterministic transcript cleanup. Step order matters: each step reads the previous one's output."""

    def __init__(self, phonetic_fixes: Optional[Dict[str, str]] = None):
        self.phonetic_fixes = dict(PHONETIC_FIXES if phonetic_fixes is None else phonetic_fixes)

    def normalize(self, text: str, spec: InputSpec) -> str:
        result = (text or "").strip()
        result = result.upper()
        result = _WHITESPACE_RUN.sub(" ", result)

        if not spec.allows_spaces:
            result = result.replace(" ", "")

        profile = spec.normalization_profile
        if profile.applies_phonetic:
            result = _replace_tokens(result, self.phonetic_fixes)
        if profile.overrides:
            result = _replace_tokens(result, dict(profile.overrides))

        return result


def normalize(text: str, spec: InputSpec) -> str:
    """Module-level shortcut using the default phonetic map."""
    return InputNormalizer().normalize(text, spec)


def contains_phrase(text: str, phrase: str) -> bool:
    """True if ``phrase`` occurs in ``text`` on word boundaries ('SEC' does not match 'SECOND')."""
    if not phrase:
        return False
    return f" {phrase} " in f" {text} "


def contains_any_phrase(text: str, phrases: Iterable[str]) -> bool:
    return any(contains_phrase(text, phrase) for phrase in phrases)


def is_word_shaped(text: str, length: int = 5) -> bool:
    """Exactly ``length`` alphabetic characters, no spaces."""
    return len(text) == length and text.isalpha()

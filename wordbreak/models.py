#!/usr/bin/env python3
"""Value types passed between the turn engine, the parser and the games."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import FrozenSet, Mapping, Optional


class InputType(Enum):
    WORD = auto()
    SINGLE_LETTER = auto()
    OPEN_ENDED = auto()


class ValidationKind(Enum):
    NONE = auto()
    ALLOWED_GUESSES = auto()
    GENERAL_DICTIONARY = auto()
    CUSTOM = auto()


@dataclass(frozen=True)
class ValidationSource:
    """Where a reply is checked against. ``words`` is only used by CUSTOM."""
    kind: ValidationKind = ValidationKind.NONE
    words: FrozenSet[str] = frozenset()

    @classmethod
    def custom(cls, words) -> "ValidationSource":
        return cls(ValidationKind.CUSTOM, frozenset(w.upper() for w in words))


class ProfileKind(Enum):
    STANDARD = auto()
    PHONETIC = auto()
    GAME_SPECIFIC = auto()


@dataclass(frozen=True)
class NormalizationProfile:
    """How the normalizer post-processes a transcript.

    GAME_SPECIFIC applies the phonetic map when ``phonetic`` is set and then
    the game's own whole-word ``overrides``.
    """
    kind: ProfileKind = ProfileKind.STANDARD
    phonetic: bool = False
    overrides: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def standard(cls) -> "NormalizationProfile":
        return cls(ProfileKind.STANDARD)

    @classmethod
    def phonetic_profile(cls) -> "NormalizationProfile":
        return cls(ProfileKind.PHONETIC, phonetic=True)

    @classmethod
    def game_specific(cls, phonetic: bool = False, overrides: Optional[Mapping[str, str]] = None) -> "NormalizationProfile":
        upper = {k.upper(): v.upper() for k, v in (overrides or {}).items()}
        return cls(ProfileKind.GAME_SPECIFIC, phonetic=phonetic, overrides=upper)

    @property
    def applies_phonetic(self) -> bool:
        return self.kind is ProfileKind.PHONETIC or (self.kind is ProfileKind.GAME_SPECIFIC and self.phonetic)

    def __hash__(self):
        return hash((self.kind, self.phonetic, tuple(sorted(self.overrides.items()))))


@dataclass(frozen=True)
class InputSpec:
    """What reply a single turn expects. Built fresh per turn, never mutated."""
    accepted_input_types: FrozenSet[InputType] = frozenset({InputType.WORD})
    validation_source: ValidationSource = field(default_factory=ValidationSource)
    max_tokens: Optional[int] = None
    allows_spaces: bool = True
    normalization_profile: NormalizationProfile = field(default_factory=NormalizationProfile.standard)


@dataclass(frozen=True)
class VoiceRecognitionResult:
    text: str
    is_final: bool
    confidence: Optional[float] = None


class GlobalCommand(Enum):
    REPEAT = "REPEAT"
    HELP = "HELP"
    RULES = "RULES"
    HINT = "HINT"
    GIVE_UP = "GIVE UP"
    STATS = "STATS"
    QUIT = "QUIT"


@dataclass(frozen=True)
class ParsedCommand:
    """One interpreted utterance, delivered to exactly one result callback."""
    global_command: Optional[GlobalCommand]
    normalized_input: str
    raw_input: str

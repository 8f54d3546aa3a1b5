"""Exception types for Word Break."""


class WordBreakError(Exception):
    """Base exception for Word Break."""


class RecognitionError(WordBreakError):
    """Speech input failed: no microphone, engine failure, or no speech detected."""

    def __init__(self, message: str, no_speech: bool = False) -> None:
        super().__init__(message)
        self.no_speech = no_speech


class SpeechOutputError(WordBreakError):
    """Speech synthesis or playback failed."""


class InvalidGuessError(WordBreakError, ValueError):
    """The evaluator received a guess or target that is not exactly five letters."""


class TurnAlreadyResolvedError(WordBreakError):
    """A pending turn was resolved a second time."""


class WordListError(WordBreakError):
    """A word list file is missing or contains no usable words."""

#!/usr/bin/env python3
"""Global command detection on normalized transcripts."""

from typing import Dict, Optional

from wordbreak.models import GlobalCommand, InputSpec, ParsedCommand
from wordbreak.text_processing import InputNormalizer
from wordbreak.utils import wb_log

# Exact-match table. Keyword/substring matching belongs to the dialogue layer.
GLOBAL_COMMANDS: Dict[str, GlobalCommand] = {
    "REPEAT": GlobalCommand.REPEAT,
    "HELP": GlobalCommand.HELP,
    "RULES": GlobalCommand.RULES,
    "HINT": GlobalCommand.HINT,
    "GIVE UP": GlobalCommand.GIVE_UP,
    "STATS": GlobalCommand.STATS,
    "QUIT": GlobalCommand.QUIT,
    "EXIT": GlobalCommand.QUIT,
    "STOP": GlobalCommand.QUIT,
}


class CommandParser:
    """Normalizes a raw transcript and classifies it against GLOBAL_COMMANDS."""

    def __init__(self, normalizer: Optional[InputNormalizer] = None):
        self.normalizer = normalizer or InputNormalizer()

    def parse(self, raw_input: str, spec: InputSpec) -> ParsedCommand:
        normalized = self.normalizer.normalize(raw_input, spec)
        command = self.detect_global_command(normalized)
        if command is not None:
            wb_log("PARSER", f"Global command: {command.name} (heard '{raw_input}')", level="DEBUG")
        return ParsedCommand(
            global_command=command,
            normalized_input=normalized,
            raw_input=raw_input,
        )

    @staticmethod
    def detect_global_command(normalized: str) -> Optional[GlobalCommand]:
        return GLOBAL_COMMANDS.get(normalized)

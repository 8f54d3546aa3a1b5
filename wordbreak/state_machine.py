#!/usr/bin/env python3
"""Turn state definitions for Word Break."""

from enum import Enum


class TurnState(Enum):
    """States of the turn-taking engine. Only TurnManager changes the current value."""
    IDLE = "idle"              # No turn in flight
    SPEAKING = "speaking"      # Speech output playing
    LISTENING = "listening"    # Speech input capturing a reply
    PROCESSING = "processing"  # Parsing the final transcript


# Edges the Turn Manager is allowed to take. Same-state "transitions" are skipped.
ALLOWED_TRANSITIONS = {
    TurnState.IDLE: {TurnState.SPEAKING},
    TurnState.SPEAKING: {TurnState.LISTENING, TurnState.IDLE},
    TurnState.LISTENING: {TurnState.PROCESSING, TurnState.SPEAKING, TurnState.IDLE},
    TurnState.PROCESSING: {TurnState.IDLE},
}


def can_transition(old: TurnState, new: TurnState) -> bool:
    return new in ALLOWED_TRANSITIONS.get(old, set())

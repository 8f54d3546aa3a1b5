"""Speech output providers."""

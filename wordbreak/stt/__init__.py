"""Speech input providers."""

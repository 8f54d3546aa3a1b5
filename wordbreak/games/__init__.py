"""Dialogue controllers built on the Turn Manager."""

#!/usr/bin/env python3
"""
Word Break Utilities

Logging, crash protection, and small spoken-text helpers.
"""

import os
import sys
import threading
import traceback
from datetime import datetime

# Global lock for stdout so provider threads and the turn executor don't interleave lines
_stdout_lock = threading.Lock()

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "WARN": 30, "ERROR": 40}
_min_level = _LEVELS["INFO"]


def set_log_level(level: str):
    """Set the minimum level printed by wb_log (DEBUG, INFO, WARNING, ERROR)."""
    global _min_level
    _min_level = _LEVELS.get(level.upper(), _LEVELS["INFO"])


def wb_log(tag: str, message: str, level: str = "INFO"):
    """
    Log a message with timestamp and tag.

    Format: [HH:MM:SS.mmm] [LEVEL] [TAG] message

    Args:
        tag: Component tag (e.g., "TURN", "STT", "GAME")
        message: Log message
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    if _LEVELS.get(level.upper(), _LEVELS["INFO"]) < _min_level:
        return

    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    log_line = f"[{timestamp}] [{level}] [{tag}] {message}"

    with _stdout_lock:
        print(log_line, flush=True)


def crash_report(exc_type, exc_value, exc_traceback, where: str = "main") -> str:
    """Plain-text crash report: what failed, where, and which threads were alive."""
    lines = [
        "Word Break Crash Log",
        f"Time: {datetime.now().isoformat(timespec='seconds')}",
        f"Thread: {where}",
        f"Error: {exc_type.__name__}: {exc_value}",
        "",
        "".join(traceback.format_exception(exc_type, exc_value, exc_traceback)).rstrip(),
        "",
        "Live threads:",
    ]
    lines.extend(f"  {thread.name}{' (daemon)' if thread.daemon else ''}" for thread in threading.enumerate())
    return "\n".join(lines) + "\n"


def log_crash(exc_type, exc_value, exc_traceback, where: str = "main"):
    """Save a crash report under logs/. Returns the file path, or None if it could not be written."""
    from wordbreak import LOGS_DIR
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    crash_file = os.path.join(LOGS_DIR, f"crash-{stamp}.log")
    try:
        os.makedirs(LOGS_DIR, exist_ok=True)
        with open(crash_file, 'w', encoding='utf-8') as f:
            f.write(crash_report(exc_type, exc_value, exc_traceback, where))
    except OSError as e:
        print(f"[CRITICAL] Could not save crash report: {e}", file=sys.stderr)
        return None
    wb_log("CRASH", f"{exc_type.__name__} in {where}, report saved to {crash_file}", level="ERROR")
    return crash_file


def setup_crash_protection():
    """Record uncaught exceptions from the main thread and from provider threads.

    Call once at application start.
    """
    def main_hook(exc_type, exc_value, exc_traceback):
        log_crash(exc_type, exc_value, exc_traceback)
        sys.__excepthook__(exc_type, exc_value, exc_traceback)

    def thread_hook(args):
        if args.exc_type is SystemExit:
            return
        name = args.thread.name if args.thread is not None else "unknown"
        log_crash(args.exc_type, args.exc_value, args.exc_traceback, where=name)

    sys.excepthook = main_hook
    threading.excepthook = thread_hook
    wb_log("INIT", "Crash protection enabled")


def spelled_out(word: str) -> str:
    """Spell a word letter by letter for speech: 'APPLE' -> 'A. P. P. L. E'."""
    return ". ".join(word)


def ordinal(n: int) -> str:
    """1 -> 'first', 2 -> 'second', ... falls back to '<n>th'."""
    words = {1: "first", 2: "second", 3: "third", 4: "fourth", 5: "fifth", 6: "sixth"}
    return words.get(n, f"{n}th")


def plural(count: int, singular: str, plural_form: str = None) -> str:
    """Pick the singular or plural noun for a spoken count."""
    if count == 1:
        return singular
    return plural_form or f"{singular}s"

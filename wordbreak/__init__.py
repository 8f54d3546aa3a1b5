"""Word Break - voice-only word guessing on top of a turn-taking engine."""
import os

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOGS_DIR = os.path.join(PROJECT_ROOT, "logs")
__version__ = "0.3.0"

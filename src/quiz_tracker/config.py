"""
Quiz tracker configuration
Database location, logging and leaderboard settings
"""

import os
from pathlib import Path

# Storage
DEFAULT_DB_PATH = os.getenv(
    "QUIZ_TRACKER_DB", str(Path.home() / ".quiz_tracker" / "tracker.db")
)
BUSY_TIMEOUT_SECONDS = float(os.getenv("QUIZ_TRACKER_BUSY_TIMEOUT", "5"))

# Logging
LOG_LEVEL = os.getenv("QUIZ_TRACKER_LOG_LEVEL", "WARNING").upper()

# Leaderboard window
TOP_SIZE = 3
WINDOW_RADIUS = 5

# Settings defaults for new users
DEFAULT_FONT_SIZE = 16
DEFAULT_THEME = "light"
DEFAULT_LANGUAGE = "en"
THEMES = ("light", "dark")

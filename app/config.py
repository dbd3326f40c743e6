import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/pools.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Bowl picks lock this many minutes before kickoff
BOWL_LOCK_MINUTES = int(os.getenv("BOWL_LOCK_MINUTES", "5"))

# March Madness
DEFAULT_PUSH_RULE = os.getenv("DEFAULT_PUSH_RULE", "favorite_advances")
MM_TEAM_COUNT = 64
MM_REGIONS = ["East", "West", "South", "Midwest"]

import os

from .config import *  # noqa: F401,F403

DEBUG = bool(int(os.getenv("DEBUG", "1")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Dev helpers
SCHEDULER_ENABLED = bool(int(os.getenv("SCHEDULER_ENABLED", "1")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "1")))

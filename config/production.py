import os

from .config import *  # noqa: F401,F403

# no fallbacks: create_app refuses to start without SECRET_KEY, and an empty
# CRON_SECRET keeps the due-entry endpoint closed
SECRET_KEY = os.getenv("SECRET_KEY", "")
CRON_SECRET = os.getenv("CRON_SECRET", "")
REQUIRE_SECRET_KEY = True

DEBUG = False

SCHEDULER_ENABLED = bool(int(os.getenv("SCHEDULER_ENABLED", "1")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

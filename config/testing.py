import os

from .config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"
CRON_SECRET = "test-cron-secret"

DB_NAME = os.getenv("DB_NAME", "sk-tutorial-test")

DEBUG = False
TESTING = True

SCHEDULER_ENABLED = False
AUTO_INIT_DB = False
AUTO_SEED_DB = False
LOG_FILE = None

import os


def _flag(name: str, default: str = "0") -> bool:
    return bool(int(os.environ.get(name, default)))


def _csv(name: str, default: str) -> tuple[str, ...]:
    raw = os.environ.get(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


SECRET_KEY = os.environ.get("SECRET_KEY") or "sk-tutorial-dev-secret"
# production sets this so a missing SECRET_KEY stops startup
REQUIRE_SECRET_KEY = False
TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "24"))
CRON_SECRET = os.environ.get("CRON_SECRET", "")

# Mongo
MONGODB_URI = os.environ.get("MONGODB_URI", "mongodb://localhost:27017")
DB_NAME = os.environ.get("DB_NAME", "sk-tutorial")

# Mail relay (Flask-Mail reads the MAIL_* keys straight from app.config)
MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
MAIL_USE_TLS = _flag("MAIL_USE_TLS", "1")
MAIL_USE_SSL = _flag("MAIL_USE_SSL", "0")
MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "no-reply@sktutorial.com")

# Cloudinary
CLOUDINARY_CLOUD_NAME = os.environ.get("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_API_KEY = os.environ.get("CLOUDINARY_API_KEY", "")
CLOUDINARY_API_SECRET = os.environ.get("CLOUDINARY_API_SECRET", "")

# Roles allowed to submit attendance marks
ATTENDANCE_MARK_ROLES = _csv("ATTENDANCE_MARK_ROLES", "admin,teacher")

OUTBOX_MAX_ATTEMPTS = int(os.environ.get("OUTBOX_MAX_ATTEMPTS", "5"))
OUTBOX_DISPATCH_SECONDS = int(os.environ.get("OUTBOX_DISPATCH_SECONDS", "60"))
SCHEDULER_ENABLED = _flag("SCHEDULER_ENABLED", "0")
# Runs generate_due_entries from the in-process scheduler on this day of month (0 = off)
DUE_ENTRIES_DAY = int(os.environ.get("DUE_ENTRIES_DAY", "0"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("LOG_FILE")

AUTO_INIT_DB = _flag("AUTO_INIT_DB", "1")
AUTO_SEED_DB = _flag("AUTO_SEED_DB", "0")

DEBUG = _flag("DEBUG", "0")
TESTING = False

# Demo accounts created by scripts/seed_db.py (or AUTO_SEED_DB)
DEMO_ADMIN_PASSWORD = os.environ.get("DEMO_ADMIN_PASSWORD", "admin@SkTutorial")
DEMO_TEACHER_PASSWORD = os.environ.get("DEMO_TEACHER_PASSWORD", "teacher@SkTutorial")

import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

SCHEMA = "pixiedvc"

ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS")
if not ALLOWED_ORIGINS_RAW:
    raise ValueError("ALLOWED_ORIGINS must be set in the environment")

ALLOWED_ORIGINS: list[str] = [origin.strip() for origin in ALLOWED_ORIGINS_RAW.split(",")]

# Public web app origin used to build owner accept/decline links
APP_ORIGIN = os.getenv("APP_ORIGIN", "http://localhost:3000").rstrip("/")

# Shared secrets for the admin and cron surfaces
ADMIN_API_TOKEN = os.getenv("ADMIN_API_TOKEN")
CRON_SECRET = os.getenv("CRON_SECRET")

# Transactional email (Resend)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", "bookings@pixiedvc.com")

# Owner payout rates, in cents per point
OWNER_BASE_RATE_PER_POINT_CENTS = int(os.getenv("OWNER_BASE_RATE_PER_POINT_CENTS", "1600"))
OWNER_HOME_RESORT_PREMIUM_PER_POINT_CENTS = int(
    os.getenv("OWNER_HOME_RESORT_PREMIUM_PER_POINT_CENTS", "200")
)

# Connection pool for one API process plus the cron-driven matcher. Matching
# runs hold one connection per booking evaluation, so the pool stays small.
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "5"))
DB_POOL_TIMEOUT_SECONDS = int(os.getenv("DB_POOL_TIMEOUT_SECONDS", "10"))
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "15000"))

import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS")
if not ALLOWED_ORIGINS_RAW:
    raise ValueError("ALLOWED_ORIGINS must be set in the environment")

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in ALLOWED_ORIGINS_RAW.split(",")
]

APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000").rstrip("/")

# Payment provider
PAYMONGO_BASE_URL = os.getenv("PAYMONGO_BASE_URL", "https://api.paymongo.com/v1/")
PAYMONGO_SECRET_KEY = os.getenv("PAYMONGO_SECRET_KEY")
PAYMONGO_WEBHOOK_SECRET = os.getenv("PAYMONGO_WEBHOOK_SECRET")

# Transactional email
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM = os.getenv("EMAIL_FROM", "Reservations <reservations@example.com>")

HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

# Stale-booking reaper
CRON_SECRET = os.getenv("CRON_SECRET")
STALE_BOOKING_HOURS = int(os.getenv("STALE_BOOKING_HOURS", "24"))
REAPER_ITEM_TIMEOUT_SECONDS = float(os.getenv("REAPER_ITEM_TIMEOUT_SECONDS", "30"))
REAPER_MAX_WORKERS = int(os.getenv("REAPER_MAX_WORKERS", "4"))

# Agent self-service claims
CLAIM_WINDOW_DAYS = int(os.getenv("CLAIM_WINDOW_DAYS", "30"))

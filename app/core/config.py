import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Base directory of the project (parent of 'app')
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Database Directory
DB_DIR = Path(os.getenv("DB_DIR", BASE_DIR / "db"))

# Generated report files live here (relative file paths are stored in the DB)
REPORTS_DIR = Path(os.getenv("REPORTS_DIR", BASE_DIR / "data"))

# Report generation runs without an authenticated user
DEFAULT_REPORT_USER_ID = int(os.getenv("DEFAULT_REPORT_USER_ID", "1"))

# Activity feed
ACTIVITY_FEED_LIMIT = int(os.getenv("ACTIVITY_FEED_LIMIT", "50"))
ACTIVITY_FALLBACK_SIZE = int(os.getenv("ACTIVITY_FALLBACK_SIZE", "500"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Ensure DB directory exists
os.makedirs(DB_DIR, exist_ok=True)


def get_cors_allow_origins() -> list[str]:
    """Origins allowed to call the API, from CORS_ALLOW_ORIGINS (comma-separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://localhost:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_trusted_hosts() -> list[str]:
    return [h.strip() for h in os.getenv("TRUSTED_HOSTS", "*").split(",") if h.strip()]

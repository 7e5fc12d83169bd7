# backend/config.py
# Environment-aware configuration for the Crowdvest backend

import logging
import os
from typing import Literal

# Environment detection - normalize to lowercase
_raw_env = os.environ.get("ENV", "local").lower()
ENV: Literal["local", "staging", "production"] = _raw_env if _raw_env in ("local", "staging", "production") else "local"  # type: ignore
IS_DEV = (ENV == "local")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "production")

# JWT configuration
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-only-secret-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_MINUTES = int(os.environ.get("ACCESS_TOKEN_MINUTES", "60"))

# Database configuration (SQLite; relative paths resolve against backend/)
DATABASE_PATH = os.environ.get("DATABASE_PATH", "crowdvest.db")

# Seed a handful of demo projects into an empty database (local runs only by default)
SEED_SAMPLE_DATA = os.environ.get("SEED_SAMPLE_DATA", "1" if IS_DEV else "0") == "1"

# Investments may be cancelled (and funding released) within this window
CANCEL_WINDOW_HOURS = int(os.environ.get("CANCEL_WINDOW_HOURS", "24"))

# Registrations with these emails get the admin role (comma-separated)
ADMIN_EMAILS = {
    email.strip().lower()
    for email in os.environ.get("ADMIN_EMAILS", "").split(",")
    if email.strip()
}

# CORS origins (expand for staging/prod)
CORS_ORIGINS = [
    "http://localhost:8501",  # Streamlit default
    "http://127.0.0.1:8501",
]

_extra_origins = os.environ.get("CORS_ORIGINS", "")
if _extra_origins:
    CORS_ORIGINS.extend(origin.strip() for origin in _extra_origins.split(",") if origin.strip())

LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if IS_DEV else "INFO").upper()

if IS_PROD and SECRET_KEY == "dev-only-secret-change-me":
    raise RuntimeError("SECRET_KEY must be set in production")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

logger.info(f"[CONFIG] Environment: {ENV}")
logger.info(f"[CONFIG] Database: {DATABASE_PATH}")
logger.info(f"[CONFIG] Access token: {ACCESS_TOKEN_MINUTES} minutes")

# agenda/config.py

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# SQLite database (file-based) unless overridden
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Defaults applied to new businesses
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/Bogota")
DEFAULT_SLOT_MINUTES = int(os.getenv("DEFAULT_SLOT_MINUTES", "30"))

# Feed sizes for the notification bell
BUSINESS_FEED_LIMIT = int(os.getenv("BUSINESS_FEED_LIMIT", "50"))
CLIENT_FEED_LIMIT = int(os.getenv("CLIENT_FEED_LIMIT", "30"))

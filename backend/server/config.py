"""Global configuration: paths and env vars.

DEPLOYMENT:
  Copy .env.example to .env and fill in the values.
  To switch servers, only the .env file needs to change.
"""

import os
from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))  # backend/
PROJECT_DIR = os.path.dirname(BASE_DIR)  # project root

# Load .env from project root (overrides any system env vars with same name)
load_dotenv(os.path.join(PROJECT_DIR, ".env"), override=True)

# ─── Paths ───────────────────────────────────────────────────
DB_PATH = os.environ.get("DB_PATH", os.path.join(BASE_DIR, "adapta.db"))
UPLOAD_DIR = os.environ.get("UPLOAD_DIR", os.path.join(BASE_DIR, "uploads"))
FRONTEND_DIR = os.environ.get("FRONTEND_DIR", os.path.join(PROJECT_DIR, "frontend", "dist"))

# ─── Environment ─────────────────────────────────────────────
# Set ENVIRONMENT=production in .env to enable HTTPS-only cookies
# and strict CORS.
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"
APP_VERSION = "1.0.0"

# ─── Server ──────────────────────────────────────────────────
PORT = int(os.environ.get("PORT", 3001))

# ─── CORS ────────────────────────────────────────────────────
# Dev:  ALLOWED_ORIGINS=*
# Prod: ALLOWED_ORIGINS=https://yourdomain.com,https://www.yourdomain.com
_raw_origins = os.environ.get("ALLOWED_ORIGINS", "*")
ALLOWED_ORIGINS = ["*"] if _raw_origins.strip() == "*" else [
    o.strip() for o in _raw_origins.split(",") if o.strip()
]

# ─── Logging ─────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # text | json

# ─── Auth ────────────────────────────────────────────────────
AUTH_COOKIE_NAME = "session_token"
AUTH_COOKIE_MAX_AGE = int(os.environ.get("AUTH_COOKIE_MAX_AGE", 2592000))  # 30 days

# ─── AI ──────────────────────────────────────────────────────
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
PLANNER_MODEL = os.environ.get("PLANNER_MODEL", "claude-sonnet-4-5-20250929")
FAST_MODEL = os.environ.get("FAST_MODEL", "claude-3-haiku-20240307")
LLM_MAX_RETRIES = int(os.environ.get("LLM_MAX_RETRIES", 2))
SYLLABUS_CHAR_LIMIT = 60_000

# ─── Background jobs ─────────────────────────────────────────
# Hour (server local time) of the nightly replan sweep.
REPLAN_SWEEP_HOUR = int(os.environ.get("REPLAN_SWEEP_HOUR", 3))

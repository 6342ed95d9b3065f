from __future__ import annotations

import os
import pathlib
import re

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
LLM_DEBUG = os.getenv("LLM_DEBUG", "0") == "1"

# -------------------------
# Intent oracle
# -------------------------
AGENT_LLM_PROVIDER = os.getenv("AGENT_LLM_PROVIDER", "auto").strip().lower()
INTENT_MODEL = os.getenv("INTENT_MODEL", "gemini-flash-latest").strip()
OPENAI_INTENT_MODEL = os.getenv("OPENAI_INTENT_MODEL", "gpt-5-nano").strip()
OPENAI_REASONING_EFFORT = os.getenv("OPENAI_REASONING_EFFORT", "").strip() or None
INTENT_MAX_COMPLETION_TOKENS = int(os.getenv("INTENT_MAX_COMPLETION_TOKENS", "2000"))
INTENT_CONFIDENCE_THRESHOLD = float(os.getenv("INTENT_CONFIDENCE_THRESHOLD", "0.6"))

# -------------------------
# Google Calendar 설정
# -------------------------
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC").strip() or "UTC"

# -------------------------
# Schedule store
# -------------------------
BASE_DIR = pathlib.Path(__file__).resolve().parent.parent
SCHEDULE_DATA_FILE = pathlib.Path(
    os.getenv("SCHEDULE_DATA_FILE", str(BASE_DIR / "schedule_data.json")))
STORE_WRITE_ATTEMPTS = int(os.getenv("STORE_WRITE_ATTEMPTS", "3"))

CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*")
cors_origins: list[str] = [
    origin.strip() for origin in CORS_ALLOW_ORIGINS.split(",") if origin.strip()
]

CANONICAL_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
TIME_TOKEN_RE = re.compile(r"(\d+)(?::(\d+))?\s*(am|pm)?", re.IGNORECASE)
DURATION_RE = re.compile(r"(\d+)\s*(min|mins|minutes|hr|hour|hours)", re.IGNORECASE)

DEFAULT_ACTIVITY_MINUTES = 60
MAX_DURATION_DIGITS = 6
DEFAULT_ACTIVITY_STATUS = "Pending"
WEEKDAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

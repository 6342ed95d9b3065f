from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
import random
import re
from zoneinfo import ZoneInfo

from .config import LLM_DEBUG, DEFAULT_TIMEZONE, WEEKDAY_NAMES


def _log_debug(message: str) -> None:
    if LLM_DEBUG:
        print(message, flush=True)


def normalize_text(text: str) -> str:
    t = (text or "").strip()
    t = re.sub(r"\s+", " ", t)
    return t


def resolve_timezone(requested_timezone: Optional[str]) -> ZoneInfo:
    for candidate in (requested_timezone, DEFAULT_TIMEZONE, "UTC"):
        if not isinstance(candidate, str):
            continue
        cleaned = candidate.strip()
        if not cleaned:
            continue
        try:
            return ZoneInfo(cleaned)
        except Exception:
            continue
    return ZoneInfo("UTC")


def now_in_timezone(timezone_name: Optional[str]) -> datetime:
    return datetime.now(resolve_timezone(timezone_name))


def current_weekday_name(timezone_name: Optional[str] = None) -> str:
    return WEEKDAY_NAMES[now_in_timezone(timezone_name).weekday()]


def random_hex_color() -> str:
    return "#{:06x}".format(random.randint(0, 0xFFFFFF))


def _clean_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _coerce_str_list(value: Any) -> List[str]:
    """Accepts a list or a comma separated string, drops blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    out: List[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        cleaned = item.strip()
        if cleaned:
            out.append(cleaned)
    return out


def _coerce_activity_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        cleaned = value.strip()
        if re.fullmatch(r"-?\d{1,18}", cleaned):
            return int(cleaned)
    return None


def _build_gcal_attendees(attendees: Optional[List[str]]) -> List[Dict[str, str]]:
    results: List[Dict[str, str]] = []
    for item in attendees or []:
        if not isinstance(item, str):
            continue
        email = item.strip()
        if email:
            results.append({"email": email})
    return results

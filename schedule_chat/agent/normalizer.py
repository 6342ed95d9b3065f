from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import (
    CANONICAL_TIME_RE,
    DEFAULT_ACTIVITY_MINUTES,
    DURATION_RE,
    MAX_DURATION_DIGITS,
    TIME_TOKEN_RE,
)
from ..utils import now_in_timezone


class ActivityValidationError(ValueError):
  """Raised when an activity request cannot be turned into a storable record."""


# Canonical field -> accepted synonyms, in priority order.
ALIAS_TABLE: List[Tuple[str, Tuple[str, ...]]] = [
    ("title", ("title", "activity", "task", "event")),
    ("startTime", ("startTime", "time", "at", "start")),
    ("endTime", ("endTime", "end")),
    ("duration", ("duration",)),
    ("description", ("description", "desc")),
    ("location", ("location",)),
    ("id", ("id",)),
    ("query", ("query",)),
    ("tags", ("tags",)),
    ("days", ("days", "recurrence", "on")),
    ("attendees", ("attendees",)),
]


def _is_empty(value: Any) -> bool:
  if value is None:
    return True
  if isinstance(value, str):
    return not value.strip()
  if isinstance(value, (list, tuple, dict)):
    return len(value) == 0
  return False


def normalize_aliases(args: Any) -> Dict[str, Any]:
  """Map loosely named oracle arguments onto the canonical field set.

  Each canonical field takes the first non-empty synonym. Fields with no
  synonym present are left out of the result.
  """
  if not isinstance(args, dict):
    return {}
  aliased: Dict[str, Any] = {}
  for field, synonyms in ALIAS_TABLE:
    for name in synonyms:
      value = args.get(name)
      if not _is_empty(value):
        aliased[field] = value
        break
  return aliased


def parse_time(value: Any, base_date: Optional[date] = None) -> Optional[datetime]:
  """Parse "5am", "14:30", "12pm" style input into a time of day.

  The returned datetime sits on ``base_date`` (today by default); only the
  hour and minute carry meaning. Input without a meridian is read as 24-hour.
  """
  if isinstance(value, bool) or value is None:
    return None
  if isinstance(value, (int, float)):
    value = str(int(value))
  if not isinstance(value, str):
    return None
  match = TIME_TOKEN_RE.search(value)
  if not match:
    return None

  hour_digits, minute_digits = match.group(1), match.group(2) or "0"
  if len(hour_digits) > 2 or len(minute_digits) > 2:
    return None
  hour = int(hour_digits)
  minutes = int(minute_digits)
  meridian = (match.group(3) or "").lower()

  if meridian == "pm" and hour < 12:
    hour += 12
  if meridian == "am" and hour == 12:
    hour = 0

  if hour > 23 or minutes > 59:
    return None
  return datetime.combine(base_date or date.today(), time(hour, minutes))


def format_time(value: Union[datetime, time]) -> str:
  return f"{value.hour:02d}:{value.minute:02d}"


def parse_duration_minutes(value: Any) -> Optional[int]:
  if value is None or isinstance(value, bool):
    return None
  if not isinstance(value, str):
    value = str(value)
  match = DURATION_RE.search(value)
  if not match:
    return None
  if len(match.group(1)) > MAX_DURATION_DIGITS:
    return None
  amount = int(match.group(1))
  unit = match.group(2).lower()
  return amount * 60 if unit.startswith("h") else amount


def is_canonical_time(value: Any) -> bool:
  return isinstance(value, str) and bool(CANONICAL_TIME_RE.match(value))


def canonicalize_time(value: Any) -> Optional[str]:
  parsed = parse_time(value)
  if parsed is None:
    return None
  return format_time(parsed)


def normalize_add_activity_args(args: Dict[str, Any]) -> Dict[str, Any]:
  title = args.get("title")
  start_raw = args.get("startTime")
  end_raw = args.get("endTime")
  duration_raw = args.get("duration")

  if _is_empty(title) or _is_empty(start_raw):
    label = title if not _is_empty(title) else "Unknown"
    raise ActivityValidationError(f"Missing title or startTime for task: {label}")

  parsed_start = parse_time(start_raw)
  start_time = format_time(parsed_start) if parsed_start else start_raw

  end_time: Optional[str] = None
  duration_minutes = None
  if _is_empty(end_raw) and not _is_empty(duration_raw):
    duration_minutes = parse_duration_minutes(duration_raw)

  if duration_minutes is not None and parsed_start is not None:
    end_time = format_time(parsed_start + timedelta(minutes=duration_minutes))
  elif not _is_empty(end_raw):
    parsed_end = parse_time(end_raw)
    end_time = format_time(parsed_end) if parsed_end else end_raw
  elif parsed_start is not None:
    end_time = format_time(parsed_start +
                           timedelta(minutes=DEFAULT_ACTIVITY_MINUTES))
  else:
    raise ActivityValidationError(f"Could not calculate end time for {title}")

  # Passthrough values are only allowed when they already look canonical.
  if not is_canonical_time(start_time):
    raise ActivityValidationError(f"Invalid startTime '{start_time}' for {title}")
  if not is_canonical_time(end_time):
    raise ActivityValidationError(f"Invalid endTime '{end_time}' for {title}")

  return {
      **args,
      "title": str(title).strip(),
      "startTime": start_time,
      "endTime": end_time,
  }


def to_calendar_iso(time_str: Optional[str],
                    timezone_name: Optional[str] = None) -> Optional[str]:
  """"HH:MM" -> today's date in ``timezone_name`` at that time, no offset.

  The zone name travels next to the value in the calendar payload, so the
  calendar service resolves the offset itself.
  """
  if _is_empty(time_str):
    return None
  canonical = time_str if is_canonical_time(time_str) else canonicalize_time(time_str)
  if canonical is None:
    return None
  today = now_in_timezone(timezone_name or "UTC").date()
  return f"{today.isoformat()}T{canonical}:00"

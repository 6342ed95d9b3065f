from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from .config import STORE_WRITE_ATTEMPTS
from .gcal import (
    CalendarFactory,
    build_insert_body,
    build_patch_body,
    default_calendar_factory,
    describe_gcal_error,
)
from .models import Activity, Hackathon
from .recurrence import normalize_day_names
from .state import ScheduleStore, StaleRevisionError, StoredSchedule
from .utils import (
    _clean_optional_str,
    _coerce_activity_id,
    _coerce_str_list,
    current_weekday_name,
    random_hex_color,
)
from .agent.normalizer import (
    ActivityValidationError,
    canonicalize_time,
    is_canonical_time,
    parse_duration_minutes,
    parse_time,
    format_time,
)

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "User not authenticated"
STORE_NOT_INITIALIZED = "Database not initialized. Check server config."
NOT_FOUND = "Activity not found."
ID_REQUIRED = "Activity id is required."
WRITE_CONFLICT = "Schedule changed concurrently, please retry."

# Fields a caller may not overwrite through update_activity.
_PROTECTED_FIELDS = {"id", "googleEventId", "htmlLink"}

_HACKATHONS = [
    Hackathon(title="Global AI Hackathon", date="2026-02-14",
              link="https://globalai.example.com"),
    Hackathon(title="Web3 Builder Jam", date="2026-03-01",
              link="https://web3jam.example.com"),
    Hackathon(title="Green Tech Challenge", date="2026-04-22",
              link="https://greentech.example.com"),
]


class ActivityNotFound(LookupError):
  pass


class ScheduleWriteConflict(RuntimeError):
  pass


@dataclass
class ToolContext:
  uid: Optional[str]
  store: Optional[ScheduleStore]
  access_token: Optional[str] = None
  time_zone: Optional[str] = None
  calendar_factory: CalendarFactory = default_calendar_factory


@dataclass
class CalendarSync:
  """Outcome of the advisory calendar mirror. Never affects the store write."""
  success: bool = True
  error: Optional[str] = None


def _merge_calendar_result(result: Dict[str, Any], sync: CalendarSync,
                           ok_message: str, partial_message: str) -> Dict[str, Any]:
  result["message"] = ok_message if sync.success else partial_message
  result["calendarError"] = sync.error
  return result


def _precheck(context: ToolContext) -> Optional[Dict[str, Any]]:
  if not context.uid:
    return {"success": False, "error": NOT_AUTHENTICATED}
  if context.store is None:
    return {"success": False, "error": STORE_NOT_INITIALIZED}
  return None


def _next_activity_id(items: List[Dict[str, Any]]) -> int:
  existing = [_coerce_activity_id(item.get("id")) for item in items]
  existing = [value for value in existing if value is not None]
  return max(existing) + 1 if existing else 1


def _find_index(items: List[Dict[str, Any]], activity_id: int) -> int:
  for index, item in enumerate(items):
    if _coerce_activity_id(item.get("id")) == activity_id:
      return index
  return -1


async def _persist(context: ToolContext, stored: StoredSchedule,
                   apply: Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]
                   ) -> List[Dict[str, Any]]:
  """Write ``apply(items)`` back, re-reading and re-applying on a stale revision."""
  items, revision = stored.items, stored.revision
  for attempt in range(max(1, STORE_WRITE_ATTEMPTS)):
    new_items = apply(items)
    try:
      await context.store.write(context.uid, new_items, expected_revision=revision)
      return new_items
    except StaleRevisionError as exc:
      logger.info("schedule write retry %d for %s: %s", attempt + 1, context.uid, exc)
      fresh = await context.store.read(context.uid)
      items, revision = fresh.items, fresh.revision
  raise ScheduleWriteConflict(WRITE_CONFLICT)


def _assert_storable(record: Dict[str, Any]) -> None:
  title = record.get("title")
  if not isinstance(title, str) or not title.strip():
    raise ActivityValidationError("Activity title is required.")
  for key in ("startTime", "endTime"):
    if not is_canonical_time(record.get(key)):
      raise ActivityValidationError(f"Invalid {key}: {record.get(key)!r}")


async def get_schedule(args: Optional[Dict[str, Any]],
                       context: ToolContext) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
  error = _precheck(context)
  if error:
    return error
  stored = await context.store.read(context.uid)
  return stored.items


async def add_activity(args: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
  error = _precheck(context)
  if error:
    return error

  try:
    _assert_storable(args)
  except ActivityValidationError as exc:
    return {"success": False, "error": str(exc)}

  days = normalize_day_names(args.get("days"))
  try:
    activity = Activity(
        id=1,
        title=args["title"].strip(),
        startTime=args["startTime"],
        endTime=args["endTime"],
        description=_clean_optional_str(args.get("description")) or "",
        location=_clean_optional_str(args.get("location")) or "",
        attendees=_coerce_str_list(args.get("attendees")),
        tags=_coerce_str_list(args.get("tags")),
        days=days or [current_weekday_name(context.time_zone)],
        color=random_hex_color(),
    )
  except ValidationError as exc:
    return {"success": False, "error": f"Invalid activity: {exc.error_count()} field error(s)"}
  record = activity.to_record()

  stored = await context.store.read(context.uid)
  record["id"] = _next_activity_id(stored.items)

  sync = CalendarSync()
  if context.access_token:
    try:
      calendar = context.calendar_factory(context.access_token)
      created = await calendar.insert(build_insert_body(record, context.time_zone))
      if created.get("id"):
        record["googleEventId"] = created["id"]
      if created.get("htmlLink"):
        record["htmlLink"] = created["htmlLink"]
      logger.info("Event '%s' added to Google Calendar.", record["title"])
    except Exception as exc:
      logger.warning("Failed to add to Google Calendar: %s", describe_gcal_error(exc))
      sync = CalendarSync(success=False, error=describe_gcal_error(exc))

  def _append(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    record["id"] = _next_activity_id(items)
    return [*items, record]

  try:
    await _persist(context, stored, _append)
  except ScheduleWriteConflict as exc:
    return {"success": False, "error": str(exc), "calendarError": sync.error}

  return _merge_calendar_result({"success": True, "activity": record}, sync,
                                "Activity added and synced.",
                                "Activity added to DB, but Calendar sync failed.")


def _prepare_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
  prepared: Dict[str, Any] = {}
  for key, value in updates.items():
    if key in _PROTECTED_FIELDS or value is None:
      continue
    prepared[key] = value
  for key in ("startTime", "endTime"):
    if key in prepared:
      canonical = canonicalize_time(prepared[key])
      if canonical is None:
        raise ActivityValidationError(f"Invalid {key}: {prepared[key]!r}")
      prepared[key] = canonical
  if "days" in prepared:
    prepared["days"] = normalize_day_names(prepared["days"])
  for key in ("tags", "attendees"):
    if key in prepared:
      prepared[key] = _coerce_str_list(prepared[key])
  if "title" in prepared:
    raw_title = prepared["title"]
    if isinstance(raw_title, (int, float)) and not isinstance(raw_title, bool):
      raw_title = str(raw_title)
    title = _clean_optional_str(raw_title)
    if title is None:
      raise ActivityValidationError("Activity title must be non-empty text.")
    prepared["title"] = title
  return prepared


def _merge_updates(existing: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
  merged = {**existing, **updates}
  duration_raw = merged.pop("duration", None)
  if "duration" in updates and "endTime" not in updates:
    minutes = parse_duration_minutes(duration_raw)
    start = parse_time(merged.get("startTime"))
    if minutes is not None and start is not None:
      merged["endTime"] = format_time(start + timedelta(minutes=minutes))
  return merged


async def update_activity(args: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
  error = _precheck(context)
  if error:
    return error

  args = dict(args or {})
  activity_id = _coerce_activity_id(args.pop("id", None))
  if activity_id is None:
    return {"success": False, "message": ID_REQUIRED}
  try:
    updates = _prepare_updates(args)
  except ActivityValidationError as exc:
    return {"success": False, "message": str(exc)}

  stored = await context.store.read(context.uid)
  index = _find_index(stored.items, activity_id)
  if index == -1:
    return {"success": False, "message": NOT_FOUND}

  original = stored.items[index]
  updated = _merge_updates(original, updates)
  if updated.get("endTime") != original.get("endTime"):
    updates.setdefault("endTime", updated.get("endTime"))

  sync = CalendarSync()
  event_id = original.get("googleEventId")
  patch_body = build_patch_body(updates, updated, context.time_zone)
  if context.access_token and event_id and patch_body:
    try:
      calendar = context.calendar_factory(context.access_token)
      await calendar.patch(event_id, patch_body)
      logger.info("Google Calendar event %s updated", event_id)
    except Exception as exc:
      logger.warning("Failed to update Google Calendar: %s", describe_gcal_error(exc))
      sync = CalendarSync(success=False, error=describe_gcal_error(exc))

  def _replace(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    nonlocal updated
    position = _find_index(items, activity_id)
    if position == -1:
      raise ActivityNotFound(activity_id)
    updated = _merge_updates(items[position], updates)
    return [*items[:position], updated, *items[position + 1:]]

  try:
    await _persist(context, stored, _replace)
  except ActivityNotFound:
    return {"success": False, "message": NOT_FOUND, "calendarError": sync.error}
  except ScheduleWriteConflict as exc:
    return {"success": False, "error": str(exc), "calendarError": sync.error}

  return _merge_calendar_result({"success": True, "activity": updated}, sync,
                                "Activity updated.",
                                "Updated in DB, but Calendar update failed.")


async def delete_activity(args: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
  error = _precheck(context)
  if error:
    return error

  activity_id = _coerce_activity_id((args or {}).get("id"))
  if activity_id is None:
    return {"success": False, "message": ID_REQUIRED}

  stored = await context.store.read(context.uid)
  index = _find_index(stored.items, activity_id)
  if index == -1:
    return {"success": False, "message": NOT_FOUND}
  target = stored.items[index]

  sync = CalendarSync()
  event_id = target.get("googleEventId")
  if context.access_token and event_id:
    try:
      calendar = context.calendar_factory(context.access_token)
      await calendar.delete(event_id)
      logger.info("Google Calendar event %s deleted", event_id)
    except Exception as exc:
      logger.warning("Failed to delete from Google Calendar: %s", describe_gcal_error(exc))
      sync = CalendarSync(success=False, error=describe_gcal_error(exc))

  def _remove(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [item for item in items if _coerce_activity_id(item.get("id")) != activity_id]

  try:
    await _persist(context, stored, _remove)
  except ScheduleWriteConflict as exc:
    return {"success": False, "error": str(exc), "calendarError": sync.error}

  return _merge_calendar_result({"success": True}, sync,
                                "Activity deleted.",
                                "Deleted from DB, but Calendar deletion failed.")


async def find_hackathons(args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
  query = _clean_optional_str((args or {}).get("query")) or "hackathons"
  return {
      "success": True,
      "message": f'Found hackathons for query: "{query}"',
      "results": [item.model_dump() for item in _HACKATHONS],
  }

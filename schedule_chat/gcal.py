from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .config import GOOGLE_CALENDAR_ID
from .recurrence import days_to_rrule
from .utils import _build_gcal_attendees, _log_debug, resolve_timezone
from .agent.normalizer import to_calendar_iso

logger = logging.getLogger(__name__)


# -------------------------
# Google Calendar 유틸
# -------------------------
def get_gcal_service(access_token: str):
  if not access_token:
    raise RuntimeError("Google access token is missing.")
  creds = Credentials(token=access_token)
  return build("calendar", "v3", credentials=creds, cache_discovery=False)


def describe_gcal_error(exc: Exception) -> str:
  if isinstance(exc, HttpError):
    reason = getattr(exc, "reason", None)
    status = getattr(getattr(exc, "resp", None), "status", None)
    if reason and status:
      return f"{status} {reason}"
    if reason:
      return str(reason)
  return str(exc) or exc.__class__.__name__


def _event_time(time_str: Optional[str],
                timezone_value: Optional[str]) -> Dict[str, Any]:
  return {
      "dateTime": to_calendar_iso(time_str, timezone_value),
      "timeZone": str(resolve_timezone(timezone_value or "UTC")),
  }


def build_insert_body(activity: Dict[str, Any],
                      timezone_value: Optional[str]) -> Dict[str, Any]:
  event_body: Dict[str, Any] = {
      "summary": activity.get("title"),
      "start": _event_time(activity.get("startTime"), timezone_value),
      "end": _event_time(activity.get("endTime"), timezone_value),
      "attendees": _build_gcal_attendees(activity.get("attendees")),
  }
  if activity.get("location"):
    event_body["location"] = activity["location"]
  if activity.get("description"):
    event_body["description"] = activity["description"]
  recurrence = days_to_rrule(activity.get("days"))
  if recurrence:
    event_body["recurrence"] = recurrence
  return event_body


def build_patch_body(updates: Dict[str, Any],
                     merged: Dict[str, Any],
                     timezone_value: Optional[str]) -> Dict[str, Any]:
  """Only fields present in ``updates`` are forwarded; times and days are
  taken from the merged record so the patch matches what gets stored."""
  body: Dict[str, Any] = {}
  if updates.get("title"):
    body["summary"] = updates["title"]
  if updates.get("description"):
    body["description"] = updates["description"]
  if updates.get("location"):
    body["location"] = updates["location"]
  if updates.get("startTime"):
    body["start"] = _event_time(merged.get("startTime"), timezone_value)
  if updates.get("endTime"):
    body["end"] = _event_time(merged.get("endTime"), timezone_value)
  if updates.get("days"):
    body["recurrence"] = days_to_rrule(merged.get("days"))
  if updates.get("attendees"):
    body["attendees"] = _build_gcal_attendees(merged.get("attendees"))
  return body


class GoogleCalendarClient:
  """Thin async wrapper over the Calendar v3 events resource.

  googleapiclient is blocking, so each call runs in a worker thread.
  """

  def __init__(self,
               access_token: str,
               calendar_id: Optional[str] = None,
               service: Any = None):
    self.access_token = access_token
    self.calendar_id = calendar_id or GOOGLE_CALENDAR_ID
    self._service = service

  def _get_service(self):
    if self._service is None:
      self._service = get_gcal_service(self.access_token)
    return self._service

  def _insert_sync(self, body: Dict[str, Any]) -> Dict[str, Any]:
    created = self._get_service().events().insert(calendarId=self.calendar_id,
                                                  body=body).execute()
    _log_debug(f"[GCAL] inserted {created.get('id')} ({body.get('summary')})")
    return {"id": created.get("id"), "htmlLink": created.get("htmlLink")}

  def _patch_sync(self, event_id: str, body: Dict[str, Any]) -> None:
    self._get_service().events().patch(calendarId=self.calendar_id,
                                       eventId=event_id,
                                       body=body).execute()
    _log_debug(f"[GCAL] patched {event_id}")

  def _delete_sync(self, event_id: str) -> None:
    self._get_service().events().delete(calendarId=self.calendar_id,
                                        eventId=event_id).execute()
    _log_debug(f"[GCAL] deleted {event_id}")

  async def insert(self, body: Dict[str, Any]) -> Dict[str, Any]:
    return await asyncio.to_thread(self._insert_sync, body)

  async def patch(self, event_id: str, body: Dict[str, Any]) -> None:
    if not event_id:
      raise ValueError("event_id is empty")
    await asyncio.to_thread(self._patch_sync, event_id, body)

  async def delete(self, event_id: str) -> None:
    if not event_id:
      raise ValueError("event_id is empty")
    await asyncio.to_thread(self._delete_sync, event_id)


CalendarFactory = Callable[[str], Any]


def default_calendar_factory(access_token: str) -> GoogleCalendarClient:
  return GoogleCalendarClient(access_token)

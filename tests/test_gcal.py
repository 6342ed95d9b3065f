from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from schedule_chat.gcal import (
    GoogleCalendarClient,
    build_insert_body,
    build_patch_body,
    describe_gcal_error,
)
from schedule_chat.utils import resolve_timezone
from tests.conftest import make_activity


def test_insert_body_without_days_has_no_recurrence():
    body = build_insert_body(make_activity(1, "Focus", days=[]), "Europe/Paris")
    assert "recurrence" not in body
    assert body["end"]["dateTime"].endswith("T10:00:00")
    assert body["end"]["timeZone"] == "Europe/Paris"
    assert body["attendees"] == []


def test_patch_body_only_sends_changed_fields():
    merged = make_activity(1, "Focus", start="13:00", end="14:30", days=["Friday"])
    body = build_patch_body({"startTime": "13:00", "days": ["Friday"]}, merged, None)
    assert set(body) == {"start", "recurrence"}
    assert body["start"]["timeZone"] == "UTC"
    assert body["recurrence"] == ["RRULE:FREQ=WEEKLY;INTERVAL=1;BYDAY=FR"]


def test_describe_http_error():
    resp = MagicMock(status=404, reason="Not Found")
    exc = HttpError(resp, b'{"error": {"message": "Not Found"}}')
    assert describe_gcal_error(exc).startswith("404")
    assert describe_gcal_error(RuntimeError("boom")) == "boom"
    assert describe_gcal_error(RuntimeError()) == "RuntimeError"


@pytest.mark.asyncio
async def test_client_runs_calls_against_service():
    service = MagicMock()
    service.events.return_value.insert.return_value.execute.return_value = {
        "id": "evt-5",
        "htmlLink": "https://calendar.example/evt-5",
        "etag": "ignored",
    }
    client = GoogleCalendarClient("token", calendar_id="team", service=service)

    created = await client.insert({"summary": "Sync"})
    await client.delete("evt-5")

    assert created == {"id": "evt-5", "htmlLink": "https://calendar.example/evt-5"}
    service.events.return_value.insert.assert_called_once_with(calendarId="team", body={"summary": "Sync"})
    service.events.return_value.delete.assert_called_once_with(calendarId="team", eventId="evt-5")


@pytest.mark.asyncio
async def test_client_rejects_empty_event_id():
    client = GoogleCalendarClient("token", service=MagicMock())
    with pytest.raises(ValueError):
        await client.patch("", {})


def test_unknown_zone_falls_back_to_resolved_zone():
    body = build_insert_body(make_activity(1), "Mars/Olympus_Mons")
    assert body["start"]["timeZone"] == str(resolve_timezone("Mars/Olympus_Mons"))
    assert body["start"]["timeZone"] != "Mars/Olympus_Mons"

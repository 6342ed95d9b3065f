import re
from datetime import date

import pytest

from schedule_chat.agent.normalizer import (
    ActivityValidationError,
    format_time,
    normalize_add_activity_args,
    normalize_aliases,
    parse_duration_minutes,
    parse_time,
    to_calendar_iso,
)


@pytest.mark.parametrize("raw, expected", [
    ("5am", "05:00"),
    ("2pm", "14:00"),
    ("14:30", "14:30"),
    ("7:05 PM", "19:05"),
    ("12am", "00:00"),
    ("12pm", "12:00"),
    ("at 9", "09:00"),
])
def test_parse_time_formats(raw, expected):
    parsed = parse_time(raw)
    assert parsed is not None
    assert format_time(parsed) == expected


def test_parse_time_rejects_garbage_and_out_of_range():
    assert parse_time("noon") is None
    assert parse_time("25:00") is None
    assert parse_time("10:75") is None
    assert parse_time(None) is None


def test_parse_time_uses_base_date():
    parsed = parse_time("8am", base_date=date(2024, 2, 29))
    assert parsed.date() == date(2024, 2, 29)


@pytest.mark.parametrize("raw, minutes", [
    ("30 mins", 30),
    ("1 hour", 60),
    ("2 hours", 120),
    ("90minutes", 90),
    ("1hr", 60),
    ("45m", None),
    ("1h", None),
    ("soon", None),
])
def test_parse_duration_minutes(raw, minutes):
    assert parse_duration_minutes(raw) == minutes


def test_start_plus_duration():
    out = normalize_add_activity_args({"title": "Run", "startTime": "5am", "duration": "30 mins"})
    assert out["startTime"] == "05:00"
    assert out["endTime"] == "05:30"

    out = normalize_add_activity_args({"title": "Study", "startTime": "2pm", "duration": "1 hour"})
    assert (out["startTime"], out["endTime"]) == ("14:00", "15:00")


def test_unparseable_duration_falls_back_to_default_hour():
    out = normalize_add_activity_args({"title": "Walk", "startTime": "19:30", "duration": "45m"})
    assert out["endTime"] == "20:30"


def test_default_end_is_one_hour_after_start():
    out = normalize_add_activity_args({"title": "Read", "startTime": "8am"})
    assert out["endTime"] == "09:00"


def test_explicit_end_time_wins_over_duration():
    out = normalize_add_activity_args({
        "title": "Meeting",
        "startTime": "9am",
        "endTime": "10:15am",
        "duration": "2 hours",
    })
    assert out["endTime"] == "10:15"


def test_end_time_wraps_past_midnight():
    out = normalize_add_activity_args({"title": "Night shift", "startTime": "11pm", "duration": "2 hours"})
    assert out["endTime"] == "01:00"


def test_extra_fields_are_kept():
    out = normalize_add_activity_args({"title": " Gym ", "startTime": "6pm", "tags": ["health"]})
    assert out["title"] == "Gym"
    assert out["tags"] == ["health"]


def test_missing_title_or_start():
    with pytest.raises(ActivityValidationError, match="Missing title or startTime for task: Unknown"):
        normalize_add_activity_args({"startTime": "5am"})
    with pytest.raises(ActivityValidationError, match="Missing title or startTime for task: Read"):
        normalize_add_activity_args({"title": "Read"})


def test_unparseable_start_without_end_fails():
    with pytest.raises(ActivityValidationError, match="Could not calculate end time for Lunch"):
        normalize_add_activity_args({"title": "Lunch", "startTime": "noon"})


def test_unparseable_start_with_end_is_rejected():
    with pytest.raises(ActivityValidationError, match="Invalid startTime"):
        normalize_add_activity_args({"title": "Lunch", "startTime": "noon", "endTime": "1pm"})


def test_normalize_aliases_maps_synonyms():
    out = normalize_aliases({"activity": "Gym", "time": "6pm", "on": "Monday", "desc": "legs"})
    assert out == {"title": "Gym", "startTime": "6pm", "days": "Monday", "description": "legs"}


def test_normalize_aliases_takes_first_non_empty():
    out = normalize_aliases({"title": "", "task": "Read", "startTime": None, "at": "7am"})
    assert out["title"] == "Read"
    assert out["startTime"] == "7am"


def test_normalize_aliases_drops_unknown_fields():
    assert normalize_aliases({"mood": "happy"}) == {}
    assert normalize_aliases(None) == {}


def test_to_calendar_iso():
    value = to_calendar_iso("09:05", "UTC")
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T09:05:00", value)
    assert to_calendar_iso("3pm", "Europe/Berlin").endswith("T15:00:00")
    assert to_calendar_iso(None) is None
    assert to_calendar_iso("later") is None


def test_huge_digit_runs_are_unparseable():
    assert parse_time("1" * 5000) is None
    assert parse_time("9:" + "0" * 5000) is None
    assert parse_duration_minutes("9" * 5000 + " mins") is None
    assert parse_duration_minutes("1234567 mins") is None

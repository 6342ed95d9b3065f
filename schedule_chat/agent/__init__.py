"""
Intent normalization for the schedule chat assistant.

Only the dependency-free normalizer is re-exported here; import
``schedule_chat.agent.intent_router`` directly for dispatch.
"""

from .normalizer import (
    ActivityValidationError,
    format_time,
    normalize_add_activity_args,
    normalize_aliases,
    parse_duration_minutes,
    parse_time,
    to_calendar_iso,
)

__all__ = [
    "ActivityValidationError",
    "format_time",
    "normalize_add_activity_args",
    "normalize_aliases",
    "parse_duration_minutes",
    "parse_time",
    "to_calendar_iso",
]

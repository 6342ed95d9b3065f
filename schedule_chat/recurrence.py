from __future__ import annotations

from typing import Any, List, Optional

from .config import WEEKDAY_NAMES
from .utils import _coerce_str_list

_RRULE_INDEX_TO_WEEKDAY = ["MO", "TU", "WE", "TH", "FR", "SA", "SU"]
_WEEKDAY_NAME_TO_CODE = {
    name.lower(): code for name, code in zip(WEEKDAY_NAMES, _RRULE_INDEX_TO_WEEKDAY)
}
_WEEKDAY_BY_LOWER = {name.lower(): name for name in WEEKDAY_NAMES}

_DAY_GROUPS = {
    "daily": WEEKDAY_NAMES,
    "everyday": WEEKDAY_NAMES,
    "every day": WEEKDAY_NAMES,
    "weekdays": WEEKDAY_NAMES[:5],
    "weekends": WEEKDAY_NAMES[5:],
    "weekend": WEEKDAY_NAMES[5:],
}


def _normalize_day_list(days: Any) -> List[str]:
    if isinstance(days, str):
        days = [days]
    if not isinstance(days, (list, tuple)):
        return []
    return [d for d in days if isinstance(d, str)]


def normalize_day_names(days: Any) -> List[str]:
    """
    "monday", "Weekdays", "daily" -> canonical weekday names, order kept.
    Names that are not weekdays are kept verbatim; the RRULE builder skips them.
    """
    out: List[str] = []
    for raw in _coerce_str_list(days):
        key = raw.lower()
        if key in _DAY_GROUPS:
            expanded = _DAY_GROUPS[key]
        elif key in _WEEKDAY_NAME_TO_CODE:
            expanded = [_WEEKDAY_BY_LOWER[key]]
        else:
            expanded = [raw]
        for name in expanded:
            if name not in out:
                out.append(name)
    return out


def days_to_byday(days: Any) -> List[str]:
    """Weekday names -> RRULE day codes, unknown names dropped, order kept."""
    codes: List[str] = []
    for raw in _normalize_day_list(days):
        code = _WEEKDAY_NAME_TO_CODE.get(raw.strip().lower())
        if code and code not in codes:
            codes.append(code)
    return codes


def days_to_rrule(days: Any) -> Optional[List[str]]:
    """
    weekday names -> ["RRULE:FREQ=WEEKLY;INTERVAL=1;BYDAY=..."]

    Always WEEKLY with INTERVAL=1, even when every day is listed, so Google
    Calendar shows the entry as a repeating weekly series.
    """
    codes = days_to_byday(days)
    if not codes:
        return None
    return [f"RRULE:FREQ=WEEKLY;INTERVAL=1;BYDAY={','.join(codes)}"]

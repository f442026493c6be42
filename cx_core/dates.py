# cx_core/dates.py
from __future__ import annotations
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Union

# Accepted string layouts after ISO parsing fails; ambiguous slash dates read month-first
_FALLBACK_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


def _from_wire(value: dict) -> Optional[date]:
    seconds = value.get("seconds", value.get("_seconds"))
    if seconds is None or isinstance(seconds, bool):
        return None
    try:
        nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
        ts = float(seconds) + float(nanos) / 1e9
        return datetime.fromtimestamp(ts, tz=timezone.utc).date()
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _from_string(value: str) -> Optional[date]:
    s = value.strip()
    if not s:
        return None
    iso = s[:-1] + "+00:00" if s.endswith(("Z", "z")) else s
    try:
        parsed = datetime.fromisoformat(iso)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date()
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def coerce_date(value: Any) -> Optional[date]:
    """
    Best-effort conversion of a stored value into a calendar date.
    Handles native dates/datetimes, Firestore timestamps, the serialised
    {seconds, nanoseconds} wire format and ISO-ish strings.
    Returns None for anything else; never raises.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if value != value:  # NaN / NaT
            return None
    except Exception:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, dict):
        return _from_wire(value)
    if isinstance(value, str):
        return _from_string(value)
    # Firestore / protobuf timestamp objects
    for attr in ("to_datetime", "ToDatetime"):
        fn = getattr(value, attr, None)
        if callable(fn):
            try:
                return coerce_date(fn())
            except Exception:
                return None
    return None


def add_days(value: Optional[date], days: int) -> Optional[date]:
    if value is None:
        return None
    return value + timedelta(days=days)


def diff_days(a: Any, b: Any) -> Optional[int]:
    """Whole days from b to a (positive when a is after b)."""
    da, db = coerce_date(a), coerce_date(b)
    if da is None or db is None:
        return None
    # calendar-day resolution, so the ceil is exact in both directions
    return math.ceil((da - db).days)


def duration_days(start: Any, end: Any) -> Union[int, str]:
    days = diff_days(end, start)
    return "-" if days is None else days


def week_number(value: Any, ref: Any) -> Union[int, str]:
    """
    1-based week of `value` counted from `ref`. Dates before `ref`
    are floored to week 1 rather than going to zero or negative.
    """
    d, r = coerce_date(value), coerce_date(ref)
    if d is None:
        return ""
    if r is None:
        return ""
    return max(1, math.floor((d - r).days / 7) + 1)


def format_display_date(value: Any) -> str:
    d = coerce_date(value)
    return d.strftime("%d/%m/%Y") if d else "-"


def to_input_date(value: Any) -> str:
    d = coerce_date(value)
    return d.isoformat() if d else ""

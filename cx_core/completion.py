# cx_core/completion.py
from __future__ import annotations
from numbers import Number
from typing import Any, Optional

from cx_core.dates import coerce_date

AFFIRMATIVE = {"Y", "YES"}
YES_NO = {"Y", "N"}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().upper()


def is_present(value: Any) -> bool:
    """Presence check used for pure date fields."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, float) and value != value:
        return False
    if isinstance(value, (dict, list, tuple, set)):
        return bool(value)
    return True


def is_done(value: Any) -> bool:
    """
    True when a step counts as completed: the field holds a date
    (native, timestamp, wire format or parseable date string) or an
    affirmative marker ("Y" / "Yes", any case). Everything else,
    including "N" and free text, is not done.
    """
    if not is_present(value):
        return False
    if not isinstance(value, (bool, Number)) and coerce_date(value) is not None:
        return True
    return _text(value) in AFFIRMATIVE


def yes_no(value: Any) -> Optional[str]:
    """Normalised Y/N requirement flag, or None when the answer is unknown."""
    flag = _text(value)
    return flag if flag in YES_NO else None

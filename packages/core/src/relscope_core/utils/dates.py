"""Timestamp helpers for Azure DevOps ISO-8601 strings.

Azure DevOps returns up to seven fractional-second digits and a trailing
``Z``, neither of which ``datetime.fromisoformat`` accepts on older
interpreters, so timestamps are normalised before parsing.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from relscope_core.models import NOT_AVAILABLE

_FRACTION_RE = re.compile(r"\.(\d+)")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an Azure DevOps timestamp, returning None for blanks and garbage."""
    if not value or value == NOT_AVAILABLE:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_key(value: str | None) -> datetime:
    """Chronological sort key; unparseable timestamps sort first."""
    return parse_timestamp(value) or _EPOCH


def duration_between(start: str | None, finish: str | None) -> tuple[str, int | None]:
    """Return ``("65s (1m 5s)", 65)`` or ``("N/A", None)`` when either end is missing."""
    started = parse_timestamp(start)
    finished = parse_timestamp(finish)
    if started is None or finished is None:
        return NOT_AVAILABLE, None
    seconds = int((finished - started).total_seconds())
    minutes, rest = divmod(seconds, 60)
    return f"{seconds}s ({minutes}m {rest}s)", seconds


def format_local_datetime(value: str | None, twelve_hour: bool = False) -> str:
    """Render as ``dd/mm/yyyy, HH:MM:SS`` in local time (British ordering)."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return NOT_AVAILABLE
    local = parsed.astimezone()
    if twelve_hour:
        return local.strftime("%d/%m/%Y, %I:%M:%S %p").lower()
    return local.strftime("%d/%m/%Y, %H:%M:%S")


def format_local_date(value: str | None) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return NOT_AVAILABLE
    return parsed.astimezone().strftime("%d/%m/%Y")

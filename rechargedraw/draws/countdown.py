"""Helpers for the time remaining until a draw."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def draw_instant(day: date, draw_time: time, tz: Optional[timezone] = None) -> datetime:
    """Return the moment the draw for ``day`` takes place (UTC unless ``tz`` is given)."""
    return datetime.combine(day, draw_time, tzinfo=tz or timezone.utc)


def format_countdown(target: datetime, now: datetime) -> str:
    """Render the time left until ``target`` as ``HH:MM:SS``.

    Hours are not wrapped at 24; once ``target`` has passed the result stays
    at ``00:00:00``.
    """
    remaining = int((target - now).total_seconds())
    if remaining <= 0:
        return "00:00:00"
    hours, rest = divmod(remaining, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


__all__ = ["draw_instant", "format_countdown"]

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def local_day_bounds(now: datetime, offset_minutes: int) -> tuple[datetime, datetime]:
    """UTC [start, end) of the calendar day containing `now` at a fixed UTC offset."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    offset = timedelta(minutes=offset_minutes)
    local = now.astimezone(timezone.utc) + offset
    local_midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    start = (local_midnight - offset).replace(tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def daily_limit_reached(created_today: int, limit: int) -> bool:
    if limit <= 0:
        return False
    return created_today >= limit

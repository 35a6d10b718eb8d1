"""
Zone-correct day boundaries.

All instants leaving this module are aware UTC datetimes; nothing here
depends on the host's local zone.
"""
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.errors import FeedError

ONE_MS = timedelta(milliseconds=1)
_END_OF_DAY = time(23, 59, 59, 999000)


def resolve_zone(tz: str) -> ZoneInfo:
    try:
        return ZoneInfo((tz or "").strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise FeedError(f"unknown time zone: {tz}")


def parse_day(date_text: str) -> date:
    try:
        return datetime.strptime((date_text or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise FeedError(f"invalid date '{date_text}', expected YYYY-MM-DD")


def resolve_day_boundary(date_text: str, tz: str, is_start: bool) -> datetime:
    """Instant of 00:00:00.000 (start) or 23:59:59.999 (end) of `date_text` in zone `tz`.

    The offset is read at the UTC instant with the same wall-clock reading,
    then subtracted.
    """
    zone = resolve_zone(tz)
    day = parse_day(date_text)
    wall = datetime.combine(day, time(0, 0) if is_start else _END_OF_DAY, tzinfo=timezone.utc)
    offset = wall.astimezone(zone).utcoffset() or timedelta(0)
    return wall - offset


def ensure_aware(instant: datetime) -> datetime:
    # naive instants are UTC; astimezone() would otherwise read them in the host zone
    return instant if instant.tzinfo is not None else instant.replace(tzinfo=timezone.utc)


def local_day(instant: datetime, tz: str) -> str:
    return ensure_aware(instant).astimezone(resolve_zone(tz)).date().isoformat()


def normalize_all_day_event(start: datetime, end: datetime, tz: str) -> tuple[datetime, datetime]:
    """
    Snap an all-day event to whole zone-local days.

    Calendars store the end of an all-day event as midnight of the day after
    its last day, so the end becomes one millisecond before the start of the
    end's local date. An end on the start's own date still covers that day.
    """
    start_day = local_day(start, tz)
    new_start = resolve_day_boundary(start_day, tz, True)
    new_end = resolve_day_boundary(local_day(end, tz), tz, True) - ONE_MS
    if new_end < new_start:
        new_end = resolve_day_boundary(start_day, tz, False)
    return new_start, new_end


def format_zoned(instant: datetime, tz: str) -> str:
    """yyyy-MM-ddTHH:mm:ss+HH:MM, wall clock of `tz` with a numeric offset."""
    return ensure_aware(instant).astimezone(resolve_zone(tz)).isoformat(timespec="seconds")

from datetime import datetime
from typing import Mapping, Optional

from app.core.errors import CalendarSourceError, FeedError
from app.core.logging import get_logger
from app.schemas.feed import BoatEventsOut, EventOut
from app.services.tz_service import ensure_aware, format_zoned, normalize_all_day_event, resolve_day_boundary
from app.sources.calendar_source import CalendarSource

log = get_logger(__name__)


def query_range(start: Optional[str], end: Optional[str], tz: str) -> tuple[datetime, datetime]:
    """Absolute instants covering the local days start..end inclusive."""
    if not start or not end:
        raise FeedError("start and end are required (YYYY-MM-DD)")
    range_start = resolve_day_boundary(start, tz, True)
    range_end = resolve_day_boundary(end, tz, False)
    if range_end < range_start:
        raise FeedError("end must not be before start")
    return range_start, range_end


def collect_boat_events(
    calendar: CalendarSource,
    boats: Mapping[str, str],
    range_start: datetime,
    range_end: datetime,
    tz: str,
    names: Optional[Mapping[str, str]] = None,
) -> list[BoatEventsOut]:
    """Busy events per boat, all-day events snapped to local day boundaries.

    `names` (boat id -> display name, e.g. from the pricing sheet) wins over
    the configured fleet names.
    """
    names = names or {}
    out = []
    for boat_id, fleet_name in boats.items():
        try:
            events = calendar.events(boat_id, range_start, range_end)
        except CalendarSourceError as e:
            raise FeedError(str(e)) from e
        spans = []
        for ev in events:
            start, end = ensure_aware(ev.start), ensure_aware(ev.end)
            if ev.all_day:
                start, end = normalize_all_day_event(start, end, tz)
            spans.append((start, end))
        spans.sort(key=lambda s: s[0])
        out.append(BoatEventsOut(
            id=boat_id,
            name=names.get(boat_id) or fleet_name or boat_id,
            events=[EventOut(start=format_zoned(s, tz), end=format_zoned(e, tz)) for s, e in spans],
        ))
        log.debug("boat events collected", extra={"boat_id": boat_id, "events": len(spans)})
    return out

"""Calendar data sources: busy events per boat within an absolute instant range."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import CalendarSourceError
from app.models.boat_event import BoatEvent


@dataclass(frozen=True)
class CalendarEvent:
    start: datetime
    end: datetime
    all_day: bool = False
    title: str = ""


class CalendarSource(Protocol):
    def events(self, boat_id: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Events overlapping [start, end]. Raises CalendarSourceError on failure."""
        ...


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _overlaps(ev: CalendarEvent, start: datetime, end: datetime) -> bool:
    return _aware(ev.start) <= end and _aware(ev.end) >= start


class InMemoryCalendarSource:
    def __init__(self, events_by_boat: dict[str, Iterable[CalendarEvent]] | None = None):
        self._events = {k: list(v) for k, v in (events_by_boat or {}).items()}

    def events(self, boat_id: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        return [e for e in self._events.get(boat_id, []) if _overlaps(e, start, end)]


class SqlCalendarSource:
    """Reads the boat_events table."""

    def __init__(self, db: Session):
        self.db = db

    def events(self, boat_id: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        try:
            rows = self.db.execute(
                select(BoatEvent)
                .where(BoatEvent.boat_id == boat_id, BoatEvent.start_at <= end, BoatEvent.end_at >= start)
                .order_by(BoatEvent.start_at.asc())
            ).scalars().all()
        except SQLAlchemyError as e:
            raise CalendarSourceError(f"calendar unavailable for boat {boat_id}") from e
        return [
            CalendarEvent(start=_aware(r.start_at), end=_aware(r.end_at), all_day=bool(r.all_day), title=r.title or "")
            for r in rows
        ]

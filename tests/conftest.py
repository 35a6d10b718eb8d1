"""
Pytest configuration for the feed service.

Provides fixtures for:
- A full pricing workbook held in memory
- Operator defaults independent of the environment
- An in-memory SQLite database and a FastAPI TestClient wired to both
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.session import Base, get_db
from app.models.audit_log import FeedRequestLog  # noqa: F401
from app.models.boat_event import BoatEvent  # noqa: F401
from app.models.setting import Setting  # noqa: F401
from app.schemas.pricing import FeedDefaults
from app.sources.calendar_source import CalendarEvent, InMemoryCalendarSource
from app.sources.table_source import InMemoryTableSource

UTC = timezone.utc

PRICING_ROWS = [
    ["boat_id", "name", "base", "min", "max", "round"],
    ["A", "Sea Breeze", 100, 50, 500, 10],
    ["B", "Blue Pearl", 150, 80, 600, None],
    [],
    ["band", "start", "end", "Mult A", "Mult B", "note"],
    ["morning", time(8, 0), time(12, 0), 1.0, 1.0],
    ["sunset", "18:00", "21:00", 1.2, "1,3", "golden hour"],
    [],
    ["dow", "Mult A", "Mult B"],
    ["sat", 1.1, 1.15],
    ["holiday", 2, 2],
    ["Nedjelja", 1.2, None],
    [],
    ["busyfrom%", "to%", "Mult A", "Mult B", "comment"],
    [80, 100, 1.3, 1.35, "peak"],
    [0.2, 0.5, 1.0, 1.05, "quiet"],
    ["n/a", 1, 1, 1, "bad row"],
    [50, 80, 1.1, 1.15, "busy"],
]

CONFIG_ROWS = [
    ["key", "value"],
    ["open", "09:00"],
    ["Slot Minutes", 60],
    ["debug", "yes"],
    ["occupancy-mode", "window"],
    ["dow_min_occupancy", 40],
    ["unknown_key", "ignored"],
]

SPECIAL_DATES_ROWS = [
    ["Date", "Name", "Boat", "Min order", "Morning", "Day", "Sunset", "Night", "24h", "12h", "Start", "End", "Type", "Note"],
    [date(2025, 8, 15), "Assumption", "A", 4, 1.5, 1.4, 1.6, None, 2000, 1200, None, None, "holiday", "Velika Gospa"],
    ["15.08.2025", "Assumption B", "blue pearl", None, 1.5, None, None, None, None, None, None, None, "holiday", ""],
    ["2025-12-31", "NYE", "YA", None, None, None, 2, 2.5, None, None, "20:00", "23:30", "event", ""],
    ["sometime", "unparseable", "A", None, None, None, None, None, None, None, None, None, "", ""],
    ["2025-12-31", "NYE fleet", "ZZ", 6, None, None, None, None, None, None, time(0, 0), None, "event", "all boats"],
]

USERS_ROWS = [
    ["User", "Method"],
    ["alice", "dynamic"],
    ["bob", "surge"],
    [42, "Dynamic"],
]


@pytest.fixture
def defaults() -> FeedDefaults:
    return FeedDefaults(
        tz="Europe/Zagreb",
        open="08:00",
        close="22:00",
        slot_minutes=30,
        boats={"A": "Yacht A", "B": "Yacht B"},
        boat_aliases={"YA": "A", "YB": "B"},
    )


@pytest.fixture
def table_source() -> InMemoryTableSource:
    return InMemoryTableSource.from_rows(
        Pricing=PRICING_ROWS,
        Config=CONFIG_ROWS,
        SpecialDates=SPECIAL_DATES_ROWS,
        Users=USERS_ROWS,
    )


@pytest.fixture
def calendar() -> InMemoryCalendarSource:
    return InMemoryCalendarSource({
        "A": [
            # all-day, stored as local midnight .. next local midnight (Zagreb, CEST)
            CalendarEvent(
                start=datetime(2025, 7, 10, 22, 0, tzinfo=UTC),
                end=datetime(2025, 7, 11, 22, 0, tzinfo=UTC),
                all_day=True,
            ),
            CalendarEvent(
                start=datetime(2025, 7, 10, 8, 0, tzinfo=UTC),
                end=datetime(2025, 7, 10, 12, 0, tzinfo=UTC),
            ),
        ],
        "B": [],
    })


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db_session, defaults, table_source, calendar) -> Generator[TestClient, None, None]:
    from app.api.deps import get_calendar_source, get_defaults, get_table_source
    from app.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_defaults] = lambda: defaults
    app.dependency_overrides[get_table_source] = lambda: table_source
    app.dependency_overrides[get_calendar_source] = lambda: calendar
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()

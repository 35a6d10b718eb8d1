"""
Feed assembly for the three query modes.

build_feed never raises: every failure comes back as {"error": message} so
the transport can answer 200 with a body the widget understands.
"""
import json
import re
from datetime import datetime
from typing import Any, Optional

from app.core.errors import CalendarSourceError, FeedError, TableSourceError
from app.core.logging import get_logger
from app.schemas.feed import FEED_MODES, EventsFeed, FeedQuery, RangeOut
from app.schemas.pricing import FeedDefaults
from app.services.events_service import collect_boat_events, query_range
from app.services.pricing_config_service import build_pricing_config
from app.services.tz_service import format_zoned, resolve_zone
from app.sources.calendar_source import CalendarSource
from app.sources.table_source import TableSource

log = get_logger(__name__)

_CALLBACK = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$.]{0,63}$")


def is_valid_callback(name: Optional[str]) -> bool:
    return bool(name) and bool(_CALLBACK.match(name))


def to_jsonp(callback: str, payload: dict) -> str:
    return f"{callback}({json.dumps(payload, ensure_ascii=False)});"


def _build(
    query: FeedQuery,
    defaults: FeedDefaults,
    table_source: TableSource,
    calendar: CalendarSource,
    now: Optional[datetime],
) -> dict[str, Any]:
    mode = (query.mode or "events").strip().lower()
    if mode not in FEED_MODES:
        raise FeedError(f"unknown mode '{query.mode}'")
    tz = (query.tz or "").strip() or defaults.tz
    resolve_zone(tz)

    if mode == "pricing":
        cfg = build_pricing_config(table_source, defaults, user=query.user, sheet_name=query.sheet, now=now, tz=tz)
        return cfg.model_dump(mode="json", by_alias=True)

    range_start, range_end = query_range(query.start, query.end, tz)
    if mode == "events":
        boats = collect_boat_events(calendar, defaults.boats, range_start, range_end, tz)
        return EventsFeed(tz=tz, boats=boats).model_dump(mode="json", by_alias=True)

    cfg = build_pricing_config(table_source, defaults, user=query.user, sheet_name=query.sheet, now=now, tz=tz)
    boats = collect_boat_events(calendar, defaults.boats, range_start, range_end, tz, names=cfg.name_lookup)
    return {
        "tz": tz,
        "range": RangeOut(start=format_zoned(range_start, tz), end=format_zoned(range_end, tz)).model_dump(by_alias=True),
        "boats": [b.model_dump(mode="json", by_alias=True) for b in boats],
        "pricing": cfg.model_dump(mode="json", by_alias=True),
    }


def build_feed(
    query: FeedQuery,
    defaults: FeedDefaults,
    table_source: TableSource,
    calendar: CalendarSource,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    try:
        return _build(query, defaults, table_source, calendar, now)
    except FeedError as e:
        log.info("feed request rejected", extra={"mode": query.mode, "error": str(e)})
        return {"error": str(e)}
    except (TableSourceError, CalendarSourceError) as e:
        log.warning("feed source failure", extra={"mode": query.mode, "error": str(e)})
        return {"error": str(e)}
    except Exception:
        log.exception("feed build failed", extra={"mode": query.mode})
        return {"error": "internal error"}

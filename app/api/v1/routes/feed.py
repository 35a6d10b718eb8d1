from typing import Mapping

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from app.api.deps import get_calendar_source, get_defaults, get_table_source
from app.db.session import get_db
from app.schemas.feed import FeedQuery
from app.schemas.pricing import FeedDefaults
from app.services.audit_service import log_feed_request
from app.services.feed_service import build_feed, is_valid_callback, to_jsonp
from app.sources.calendar_source import CalendarSource
from app.sources.table_source import TableSource

router = APIRouter(tags=["feed"])

_KNOWN_PARAMS = {"tz", "start", "end", "mode", "sheetId", "sheet", "user", "u", "callback"}
_CLIENT_VALUE_MAX = 500


def parse_feed_query(params: Mapping[str, str]) -> FeedQuery:
    """Known parameters into FeedQuery; anything else is client telemetry for the audit trail."""
    return FeedQuery(
        tz=params.get("tz"),
        start=params.get("start"),
        end=params.get("end"),
        mode=params.get("mode") or "events",
        sheet_id=params.get("sheetId"),
        sheet=params.get("sheet") or None,
        user=params.get("user") or params.get("u"),
        callback=params.get("callback"),
        client={k: str(v)[:_CLIENT_VALUE_MAX] for k, v in params.items() if k not in _KNOWN_PARAMS},
    )


@router.get("/feed")
def get_feed(
    request: Request,
    db: Session = Depends(get_db),
    defaults: FeedDefaults = Depends(get_defaults),
    table_source: TableSource = Depends(get_table_source),
    calendar: CalendarSource = Depends(get_calendar_source),
):
    """Availability and pricing feed. Always 200; failures come back as {"error": "..."}."""
    query = parse_feed_query(request.query_params)
    payload = build_feed(query, defaults, table_source, calendar)

    log_feed_request(
        db,
        mode=query.mode,
        tz=query.tz or defaults.tz,
        range_start=query.start,
        range_end=query.end,
        user=query.user,
        sheet_id=query.sheet_id,
        error=payload.get("error"),
        client=query.client,
    )

    if query.callback:
        if not is_valid_callback(query.callback):
            return JSONResponse({"error": "invalid callback name"})
        return Response(to_jsonp(query.callback, payload), media_type="application/javascript")
    return JSONResponse(payload)

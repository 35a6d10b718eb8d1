from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.schemas.pricing import FeedDefaults
from app.services.settings_service import get_feed_defaults
from app.sources.calendar_source import CalendarSource, SqlCalendarSource
from app.sources.table_source import TableSource, XlsxTableSource, workbook_path


def get_defaults(db: Session = Depends(get_db)) -> FeedDefaults:
    return get_feed_defaults(db)


def get_table_source(sheetId: Optional[str] = Query(default=None)) -> TableSource:
    sheet_id = (sheetId or "").strip() or settings.PRICING_SHEET_ID
    return XlsxTableSource(workbook_path(settings.PRICING_WORKBOOK_DIR, sheet_id))


def get_calendar_source(db: Session = Depends(get_db)) -> CalendarSource:
    return SqlCalendarSource(db)

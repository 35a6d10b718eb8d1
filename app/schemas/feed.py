from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.pricing import FeedModel

FeedMode = Literal["events", "pricing", "combined"]
FEED_MODES = ("events", "pricing", "combined")


class FeedQuery(BaseModel):
    """Parsed query string of GET /feed. Unknown parameters end up in `client`."""
    tz: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    mode: str = "events"
    sheet_id: Optional[str] = None
    sheet: Optional[str] = None
    user: Optional[str] = None
    callback: Optional[str] = None
    client: Dict[str, str] = Field(default_factory=dict)


class EventOut(FeedModel):
    start: str  # yyyy-MM-ddTHH:mm:ss+HH:MM
    end: str


class BoatEventsOut(FeedModel):
    id: str
    name: str
    events: List[EventOut] = Field(default_factory=list)


class RangeOut(FeedModel):
    start: str
    end: str


class EventsFeed(FeedModel):
    tz: str
    boats: List[BoatEventsOut]

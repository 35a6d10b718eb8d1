from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base

class FeedRequestLog(Base):
    __tablename__ = "feed_request_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    mode: Mapped[str] = mapped_column(String(16), index=True)  # events|pricing|combined
    tz: Mapped[str] = mapped_column(String(64), default="")
    range_start: Mapped[str] = mapped_column(String(10), nullable=True)  # YYYY-MM-DD
    range_end: Mapped[str] = mapped_column(String(10), nullable=True)
    user: Mapped[str] = mapped_column(String(120), nullable=True, index=True)
    sheet_id: Mapped[str] = mapped_column(String(120), nullable=True)
    status: Mapped[str] = mapped_column(String(12), default="ok")  # ok|error
    error: Mapped[str] = mapped_column(Text, nullable=True)
    client_json: Mapped[str] = mapped_column(Text, default="{}")  # client telemetry, passed through as-is
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

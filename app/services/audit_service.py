import uuid, json, threading
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging import get_logger
from app.models.audit_log import FeedRequestLog

log = get_logger(__name__)

# Serializes audit writes across request threads; never held while building the feed.
_write_lock = threading.Lock()


def log_feed_request(
    db: Session,
    mode: str,
    tz: str,
    range_start: str | None = None,
    range_end: str | None = None,
    user: str | None = None,
    sheet_id: str | None = None,
    error: str | None = None,
    client: dict | None = None,
    lock_timeout: float | None = None,
) -> bool:
    """Append one request record. Returns False (and logs) when the record was skipped."""
    timeout = settings.AUDIT_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
    if not _write_lock.acquire(timeout=timeout):
        log.warning("audit lock busy, request not recorded", extra={"mode": mode})
        return False
    try:
        db.add(FeedRequestLog(
            id=str(uuid.uuid4()),
            mode=mode,
            tz=tz or "",
            range_start=range_start,
            range_end=range_end,
            user=user,
            sheet_id=sheet_id,
            status="error" if error else "ok",
            error=error,
            client_json=json.dumps(client or {}, ensure_ascii=False),
        ))
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        log.warning("audit write failed", extra={"mode": mode, "error": str(e)})
        return False
    finally:
        _write_lock.release()

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.db.session import SessionLocal
from app.core.config import settings
from app.core.logging import get_logger
from app.models.setting import Setting
from app.services import settings_service as ss

log = get_logger(__name__)


def default_settings() -> dict[str, str]:
    """Settings rows written on first start, mirroring the env defaults."""
    rows = {
        ss.KEY_TZ: settings.DEFAULT_TZ,
        ss.KEY_OPEN: settings.OPEN_TIME,
        ss.KEY_CLOSE: settings.CLOSE_TIME,
        ss.KEY_SLOT_MINUTES: str(settings.SLOT_MINUTES),
        ss.KEY_BOATS: settings.BOATS,
        ss.KEY_BOAT_ALIASES: settings.BOAT_ALIASES,
        ss.KEY_PRICING_SHEET: settings.PRICING_SHEET_NAME,
    }
    if settings.DEFAULT_ROUND_TO is not None:
        rows[ss.KEY_DEFAULT_ROUND_TO] = str(settings.DEFAULT_ROUND_TO)
    return rows


def ensure_setting(db: Session, key: str, value: str) -> bool:
    if db.get(Setting, key):
        return False
    db.add(Setting(key=key, str_value=value))
    return True


def run(db=None):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM settings LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            log.warning("settings table not found yet; skipping seed (run alembic upgrade head)")
            return

        created = [k for k, v in default_settings().items() if ensure_setting(db, k, v)]
        if created:
            db.commit()
            log.info("seeded settings", extra={"keys": created})
    finally:
        db.close()


if __name__ == "__main__":
    run()

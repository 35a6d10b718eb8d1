from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging import get_logger
from app.models.setting import Setting
from app.schemas.pricing import FeedDefaults

log = get_logger(__name__)

# Keys in the settings table; each overrides the env default of the same meaning.
KEY_TZ = "TZ"
KEY_OPEN = "OPEN"
KEY_CLOSE = "CLOSE"
KEY_SLOT_MINUTES = "SLOT_MINUTES"
KEY_DEFAULT_ROUND_TO = "DEFAULT_ROUND_TO"
KEY_BOATS = "BOATS"
KEY_BOAT_ALIASES = "BOAT_ALIASES"
KEY_PRICING_SHEET = "PRICING_SHEET"

ALL_KEYS = (KEY_TZ, KEY_OPEN, KEY_CLOSE, KEY_SLOT_MINUTES, KEY_DEFAULT_ROUND_TO, KEY_BOATS, KEY_BOAT_ALIASES, KEY_PRICING_SHEET)


def parse_pairs(text: str) -> dict[str, str]:
    """'A:Yacht A,B:Yacht B' -> {'A': 'Yacht A', 'B': 'Yacht B'}; a bare 'A' maps to itself."""
    out: dict[str, str] = {}
    for item in (text or "").split(","):
        item = item.strip()
        if not item:
            continue
        key, _, value = item.partition(":")
        key = key.strip()
        if key:
            out[key] = value.strip() or key
    return out


def get_setting(db: Session, key: str) -> Optional[str]:
    s = db.get(Setting, key)
    if s and s.str_value:
        return s.str_value
    return None


def set_setting(db: Session, key: str, value: str) -> str:
    if key not in ALL_KEYS:
        raise ValueError(f"unknown setting {key}")
    s = db.get(Setting, key)
    if not s:
        s = Setting(key=key, str_value=value)
        db.add(s)
    else:
        s.str_value = value
    db.commit()
    return value


def _stored(db: Session) -> dict[str, str]:
    try:
        rows = db.query(Setting).filter(Setting.key.in_(ALL_KEYS)).all()
    except SQLAlchemyError as e:
        db.rollback()
        log.warning("settings table unavailable, using env defaults", extra={"error": str(e)})
        return {}
    return {r.key: r.str_value for r in rows if r.str_value}


def _int(value: Optional[str], fallback: int) -> int:
    try:
        return int(value) if value else fallback
    except ValueError:
        return fallback


def _float(value: Optional[str], fallback: Optional[float]) -> Optional[float]:
    try:
        return float(value) if value else fallback
    except ValueError:
        return fallback


def get_feed_defaults(db: Session) -> FeedDefaults:
    stored = _stored(db)
    return FeedDefaults(
        tz=stored.get(KEY_TZ, settings.DEFAULT_TZ),
        open=stored.get(KEY_OPEN, settings.OPEN_TIME),
        close=stored.get(KEY_CLOSE, settings.CLOSE_TIME),
        slot_minutes=_int(stored.get(KEY_SLOT_MINUTES), settings.SLOT_MINUTES),
        default_round_to=_float(stored.get(KEY_DEFAULT_ROUND_TO), settings.DEFAULT_ROUND_TO),
        boats=parse_pairs(stored.get(KEY_BOATS, settings.BOATS)),
        boat_aliases=parse_pairs(stored.get(KEY_BOAT_ALIASES, settings.BOAT_ALIASES)),
        pricing_sheet=stored.get(KEY_PRICING_SHEET, settings.PRICING_SHEET_NAME),
        config_sheet=settings.CONFIG_SHEET_NAME,
        special_dates_sheet=settings.SPECIAL_DATES_SHEET_NAME,
        users_sheet=settings.USERS_SHEET_NAME,
    )

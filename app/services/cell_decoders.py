"""
Cell decoders: one function per field kind, each taking a Cell (raw, display).

The raw value wins whenever its type already says what the cell means (a native
date, a number); otherwise the display text is parsed. Decoders never raise:
failures come back as NaN (numbers) or None, and the caller decides whether an
absent field matters.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime, time
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

from app.sources.table_source import Cell

NAN = float("nan")

_SPACES = re.compile(r"[\s\u00a0\u202f]+")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DMY_DATE = re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{4}|\d{2})\.?$")

# English + Croatian, lower-case; diacritic-free spellings are common in the sheet.
WEEKDAY_NAMES = {
    "mon": ("monday", "mon", "mo", "ponedjeljak", "pon", "po"),
    "tue": ("tuesday", "tue", "tues", "tu", "utorak", "uto", "ut"),
    "wed": ("wednesday", "wed", "we", "srijeda", "sri", "sr"),
    "thu": ("thursday", "thu", "thur", "thurs", "th", "četvrtak", "cetvrtak", "čet", "cet", "če", "ce"),
    "fri": ("friday", "fri", "fr", "petak", "pet", "pe"),
    "sat": ("saturday", "sat", "sa", "subota", "sub"),
    "sun": ("sunday", "sun", "nedjelja", "ned", "ne"),
}
_WEEKDAY_LOOKUP = {alias: token for token, aliases in WEEKDAY_NAMES.items() for alias in aliases}
WEEKDAYS = tuple(WEEKDAY_NAMES.keys())


class ClockTime(NamedTuple):
    text: str
    minutes: int


def _is_number(raw) -> bool:
    return isinstance(raw, (int, float)) and not isinstance(raw, bool)


def cell_text(cell: Cell) -> str:
    """Display text, or the raw string when nothing was rendered."""
    if cell.display and cell.display.strip():
        return cell.display.strip()
    if isinstance(cell.raw, str):
        return cell.raw.strip()
    return ""


def decode_text(cell: Cell) -> str:
    text = cell_text(cell)
    if text:
        return text
    if cell.raw is None or isinstance(cell.raw, str):
        return ""
    return decode_id(cell)


def decode_id(cell: Cell) -> str:
    """Identifier text; integral numbers lose their trailing .0."""
    raw = cell.raw
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    if _is_number(raw):
        return str(raw)
    text = cell_text(cell)
    if text:
        return text
    return "" if raw is None else str(raw).strip()


def decode_number(cell: Cell) -> float:
    raw = cell.raw
    if isinstance(raw, (datetime, time)):
        return raw.hour + raw.minute / 60
    if _is_number(raw):
        return float(raw)
    text = _SPACES.sub("", cell_text(cell)).replace(",", ".")
    if not text:
        return NAN
    try:
        value = float(text)
    except ValueError:
        return NAN
    return value


def is_absent(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def optional_number(cell: Cell) -> Optional[float]:
    value = decode_number(cell)
    return None if math.isnan(value) else value


def _clock(minutes: int) -> ClockTime:
    hh, mm = divmod(max(minutes, 0), 60)
    return ClockTime(f"{hh:02d}:{mm:02d}", hh * 60 + mm)


def _int_part(part: str) -> int:
    part = part.strip()
    try:
        return int(float(part)) if part else 0
    except ValueError:
        return 0


def decode_clock_time(cell: Cell) -> ClockTime:
    raw = cell.raw
    if isinstance(raw, (datetime, time)):
        return _clock(raw.hour * 60 + raw.minute)
    if _is_number(raw):
        return _clock(int(round(float(raw) * 1440)))
    text = cell_text(cell)
    if not text:
        return ClockTime("00:00", 0)
    parts = (text.split(":") + ["0"])[:2]
    return _clock(_int_part(parts[0]) * 60 + _int_part(parts[1]))


def decode_optional_clock_time(cell: Cell) -> Optional[ClockTime]:
    """Like decode_clock_time, but a blank cell is None instead of midnight."""
    if cell.is_blank:
        return None
    return decode_clock_time(cell)


def decode_percent(cell: Cell) -> Optional[float]:
    text = cell_text(cell)
    if not _is_number(cell.raw) and text.endswith("%"):
        value = decode_number(Cell(None, text[:-1]))
        if math.isnan(value):
            return None
        value /= 100
    else:
        value = decode_number(cell)
        if math.isnan(value):
            return None
        if value > 1:
            value /= 100
    return min(max(value, 0.0), 1.0)


def decode_weekday(text: str) -> Optional[str]:
    key = (text or "").strip().lower().rstrip(".")
    if not key:
        return None
    return _WEEKDAY_LOOKUP.get(key)


def decode_date_cell(cell: Cell, tz: str) -> Optional[str]:
    raw = cell.raw
    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            raw = raw.astimezone(ZoneInfo(tz))
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()

    text = cell_text(cell)
    if not text:
        return None
    m = _ISO_DATE.match(text)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    m = _DMY_DATE.match(text)
    if m:
        year = int(m.group(3))
        if len(m.group(3)) == 2:
            year += 2000
        return _safe_date(year, int(m.group(2)), int(m.group(1)))
    if text.isdigit():
        return None
    try:
        return date_parser.parse(text, dayfirst=True).date().isoformat()
    except (ValueError, OverflowError):
        return None


def _safe_date(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def decode_flag(text: str) -> bool:
    return (text or "").strip().lower() in ("true", "1", "yes")

"""
Special dates sheet: per-date overrides of the regular pricing.

Columns are found by header text on the first row, so authors can reorder
or drop them freely:

    date | name | boat | min order | morning | day | sunset | night | 24h | 12h | start | end | type | note

Every row with a readable date adds one entry to that date's group. A blank
boat cell, or one that matches no boat, applies the entry to all boats.
"""
from __future__ import annotations

import re
from typing import Mapping, Optional, Sequence

from app.core.errors import TableSourceError
from app.core.logging import get_logger
from app.schemas.pricing import Asset, DaypartMultipliers, SpecialDateOverride
from app.services.cell_decoders import (
    decode_date_cell,
    decode_optional_clock_time,
    decode_text,
    optional_number,
)
from app.sources.table_source import Cell, Sheet, TableSource

log = get_logger(__name__)

# field -> accepted header spellings, compared after dropping everything but letters and digits
COLUMN_HEADERS = {
    "date": ("date", "datum"),
    "name": ("name", "naziv", "title"),
    "boat": ("boat", "boatid", "boatname", "yacht", "asset", "brod"),
    "min_order": ("minorder", "minimumorder", "minorderhours", "moq", "minhours"),
    "morning": ("morning", "multmorning", "jutro"),
    "day": ("day", "multday", "dan"),
    "sunset": ("sunset", "multsunset", "zalazak"),
    "night": ("night", "multnight", "noc"),
    "price24h": ("24h", "price24h", "flat24h", "24hprice"),
    "price12h": ("12h", "price12h", "flat12h", "12hprice"),
    "start": ("start", "from", "starttime", "od"),
    "end": ("end", "to", "endtime", "do"),
    "type": ("type", "kind", "tip"),
    "note": ("note", "notes", "comment", "napomena"),
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def _header_key(text: str) -> str:
    return _NON_ALNUM.sub("", text.lower())


def resolve_columns(header: Sequence[Cell]) -> dict[str, int]:
    """Map field name -> column index for every recognized header cell (first match wins)."""
    lookup = {alias: field for field, aliases in COLUMN_HEADERS.items() for alias in aliases}
    cols: dict[str, int] = {}
    for i, cell in enumerate(header):
        field = lookup.get(_header_key(decode_text(cell)))
        if field and field not in cols:
            cols[field] = i
    return cols


class BoatResolver:
    """Boat reference -> boat id: exact id, then display name, then short-code alias."""

    def __init__(self, boats: Sequence[Asset], aliases: Mapping[str, str]):
        self._ids = {b.id for b in boats}
        self._by_name = {b.name.strip().lower(): b.id for b in boats if b.name}
        self._aliases = {}
        for code, target in aliases.items():
            target_id = self._match_id(target)
            if target_id is not None:
                self._aliases[code.strip().lower()] = target_id

    def _match_id(self, ref: str) -> Optional[str]:
        if ref in self._ids:
            return ref
        low = ref.strip().lower()
        return next((i for i in self._ids if i.lower() == low), None)

    def resolve(self, ref: str) -> Optional[str]:
        ref = (ref or "").strip()
        if not ref:
            return None
        if ref in self._ids:
            return ref
        low = ref.lower()
        return self._by_name.get(low) or self._aliases.get(low)


def _decode_row(sheet: Sheet, r: int, cols: dict[str, int], boats: BoatResolver, tz: str) -> Optional[SpecialDateOverride]:
    def cell(field: str) -> Cell:
        col = cols.get(field)
        return sheet.cell(r, col) if col is not None else Cell(None, "")

    day = decode_date_cell(cell("date"), tz)
    if day is None:
        return None
    start = decode_optional_clock_time(cell("start"))
    end = decode_optional_clock_time(cell("end"))
    boat_ref = decode_text(cell("boat"))
    boat_id = boats.resolve(boat_ref)
    if boat_ref and boat_id is None:
        log.debug("special date boat not resolved, applying to all", extra={"date": day, "boat": boat_ref})
    return SpecialDateOverride(
        date=day,
        name=decode_text(cell("name")),
        boat_id=boat_id,
        min_order=optional_number(cell("min_order")),
        multipliers=DaypartMultipliers(
            morning=optional_number(cell("morning")),
            day=optional_number(cell("day")),
            sunset=optional_number(cell("sunset")),
            night=optional_number(cell("night")),
        ),
        price24h=optional_number(cell("price24h")),
        price12h=optional_number(cell("price12h")),
        start=start.text if start else None,
        end=end.text if end else None,
        type=decode_text(cell("type")),
        note=decode_text(cell("note")),
    )


def resolve_special_dates(
    source: TableSource,
    boats: Sequence[Asset],
    tz: str,
    aliases: Optional[Mapping[str, str]] = None,
    sheet_name: str = "SpecialDates",
) -> dict[str, list[SpecialDateOverride]]:
    """
    Date -> override entries, dates in ascending order, entries in sheet order.

    A missing or unreadable sheet, or one without a date column, gives {}.
    """
    try:
        sheet = source.get_sheet(sheet_name)
    except TableSourceError as e:
        log.warning("special dates unavailable", extra={"sheet": sheet_name, "error": str(e)})
        return {}
    if sheet is None or sheet.height == 0:
        return {}
    cols = resolve_columns(sheet.row(0))
    if "date" not in cols:
        log.warning("special dates sheet has no date column", extra={"sheet": sheet.name})
        return {}

    resolver = BoatResolver(boats, aliases or {})
    groups: dict[str, list[SpecialDateOverride]] = {}
    for r in range(1, sheet.height):
        entry = _decode_row(sheet, r, cols, resolver, tz)
        if entry is not None:
            groups.setdefault(entry.date, []).append(entry)
    return {d: groups[d] for d in sorted(groups)}

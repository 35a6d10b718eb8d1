"""
Pricing config assembly from the pricing workbook.

Main sheet layout (first column carries the section headers):

    boat_id | name | base | min | max | round
    A       | Yacht A | 100 | 50 | 500 | 10
    (blank)
    band    | start | end   | Mult A | Mult B
    sunset  | 18:00 | 21:00 | 1.2    | 1.3
    (blank)
    dow     | Mult A | Mult B
    sat     | 1.1    | 1.15
    (blank)
    busyfrom% | to% | Mult A | Mult B | comment
    60        | 80  | 1.1    | 1.1    | busy week

Only the boat_id section is required. The Config sheet (key | value),
the SpecialDates sheet and the Users sheet are optional.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional, Sequence

from app.core.errors import PricingConfigError, TableSourceError
from app.core.logging import get_logger
from app.schemas.pricing import (
    Asset,
    FeedDefaults,
    Multipliers,
    OccupancyLevel,
    PricingConfig,
    TimeBand,
    UiValue,
)
from app.services.cell_decoders import (
    decode_clock_time,
    decode_flag,
    decode_id,
    decode_number,
    decode_percent,
    decode_text,
    decode_weekday,
    optional_number,
)
from app.services.special_dates_service import resolve_special_dates
from app.services.table_scanner import (
    FirstColumnLocator,
    MultiplierColumn,
    SectionLocator,
    extract_multiplier_columns,
    read_section,
)
from app.services.user_policy_service import resolve_pricing_method
from app.sources.table_source import Cell, Sheet, TableSource

log = get_logger(__name__)

ASSET_HEADER = "boat_id"
BAND_HEADER = "band"
DOW_HEADER = "dow"
BUSY_HEADER = "busyfrom%"

# Config sheet key -> (field, decoder kind)
CONFIG_KEYS = {
    "open": ("open", "time"),
    "close": ("close", "time"),
    "slot_minutes": ("slot_minutes", "int"),
    "default_round_to": ("default_round_to", "number"),
    "occupancy_window_days": ("occupancyWindowDays", "int"),
    "occupancy_horizon_days": ("occupancyHorizonDays", "number"),
    "occupancy_far_multiplier": ("occupancyFarMultiplier", "number"),
    "dow_min_occupancy": ("dowMinOccupancy", "percent"),
    "test_calendar": ("testCalendar", "flag"),
    "debug": ("debug", "flag"),
    "occupancy_mode": ("occupancyMode", "text"),
}
_GLOBAL_FIELDS = ("open", "close", "slot_minutes", "default_round_to")


def _cell(row: Sequence[Cell], col: int) -> Cell:
    return row[col] if 0 <= col < len(row) else Cell(None, "")


class _AssetIds:
    """Case-insensitive resolution of multiplier keys to known asset ids."""

    def __init__(self, assets: Sequence[Asset]):
        self._by_lower = {a.id.lower(): a.id for a in assets}

    def resolve(self, key: str) -> Optional[str]:
        return self._by_lower.get((key or "").strip().lower())

    def columns(self, header: Sequence[Cell]) -> list[MultiplierColumn]:
        out = []
        for mc in extract_multiplier_columns(header):
            asset_id = self.resolve(mc.asset_id)
            if asset_id is None:
                log.debug("dropping multiplier column for unknown boat", extra={"header": mc.asset_id})
                continue
            out.append(MultiplierColumn(asset_id, mc.col))
        return out


def _multipliers(row: Sequence[Cell], columns: Sequence[MultiplierColumn]) -> Multipliers:
    out: Multipliers = {}
    for mc in columns:
        value = decode_number(_cell(row, mc.col))
        if not math.isnan(value):
            out[mc.asset_id] = value
    return out


def _decode_asset(row: list[Cell]) -> Optional[Asset]:
    asset_id = decode_id(_cell(row, 0))
    if not asset_id:
        return None
    base = decode_number(_cell(row, 2))
    round_to = optional_number(_cell(row, 5))
    return Asset(
        id=asset_id,
        name=decode_text(_cell(row, 1)) or asset_id,
        base=0.0 if math.isnan(base) else base,
        min_rate=optional_number(_cell(row, 3)),
        max_rate=optional_number(_cell(row, 4)),
        round_to=round_to,
    )


def read_assets(sheet: Sheet, locator: SectionLocator) -> list[Asset]:
    header = locator.find(sheet, ASSET_HEADER)
    if header is None:
        raise PricingConfigError(f"pricing sheet '{sheet.name}' has no '{ASSET_HEADER}' header")
    assets: list[Asset] = []
    seen: set[str] = set()
    for asset in read_section(sheet, header, _decode_asset, stop_on_empty_key=True):
        if asset.id in seen:
            log.warning("duplicate boat id ignored", extra={"boat_id": asset.id})
            continue
        seen.add(asset.id)
        assets.append(asset)
    if not assets:
        raise PricingConfigError(f"pricing sheet '{sheet.name}' lists no boats under '{ASSET_HEADER}'")
    return assets


def read_bands(sheet: Sheet, locator: SectionLocator, ids: _AssetIds) -> list[TimeBand]:
    header = locator.find(sheet, BAND_HEADER)
    if header is None:
        return []
    columns = ids.columns(sheet.row(header))

    def decode(row: list[Cell]) -> TimeBand:
        start = decode_clock_time(_cell(row, 1))
        end = decode_clock_time(_cell(row, 2))
        return TimeBand(
            label=decode_text(_cell(row, 0)),
            start=start.text,
            end=end.text,
            start_minutes=start.minutes,
            end_minutes=end.minutes,
            multipliers=_multipliers(row, columns),
        )

    return read_section(sheet, header, decode)


def read_dow_multipliers(sheet: Sheet, locator: SectionLocator, ids: _AssetIds) -> dict[str, Multipliers]:
    header = locator.find(sheet, DOW_HEADER)
    if header is None:
        return {}
    columns = ids.columns(sheet.row(header))

    def decode(row: list[Cell]) -> Optional[tuple[str, Multipliers]]:
        day = decode_weekday(decode_text(_cell(row, 0)))
        if day is None:
            return None
        return day, _multipliers(row, columns)

    return dict(read_section(sheet, header, decode))


def read_busy_levels(sheet: Sheet, locator: SectionLocator, ids: _AssetIds) -> list[OccupancyLevel]:
    header = locator.find(sheet, BUSY_HEADER)
    if header is None:
        return []
    header_cells = sheet.row(header)
    columns = ids.columns(header_cells)
    # Comment sits in the first column after the multipliers (or after from/to when there are none).
    mult_cols = [mc.col for mc in extract_multiplier_columns(header_cells)]
    comment_col = (max(mult_cols) if mult_cols else 1) + 1

    def decode(row: list[Cell]) -> Optional[OccupancyLevel]:
        lower = decode_percent(_cell(row, 0))
        if lower is None:
            return None
        upper = decode_percent(_cell(row, 1))
        return OccupancyLevel(
            from_=lower,
            to=1.0 if upper is None else upper,
            multipliers=_multipliers(row, columns),
            comment=decode_text(_cell(row, comment_col)),
        )

    levels = read_section(sheet, header, decode)
    return sorted(levels, key=lambda lvl: lvl.from_)


def _config_value(kind: str, cell: Cell) -> Optional[UiValue]:
    if cell.is_blank:
        return None
    if kind == "time":
        return decode_clock_time(cell).text
    if kind == "flag":
        return decode_flag(decode_text(cell))
    if kind == "text":
        return decode_text(cell)
    if kind == "percent":
        return decode_percent(cell)
    value = decode_number(cell)
    if math.isnan(value):
        return None
    return int(value) if kind == "int" else value


def _normalize_key(text: str) -> str:
    return "_".join(text.strip().lower().replace("-", " ").split())


def read_config_overrides(source: TableSource, sheet_name: str) -> dict[str, UiValue]:
    """key | value rows from the config sheet, decoded per known key. Unknown keys are ignored."""
    try:
        sheet = source.get_sheet(sheet_name)
    except TableSourceError as e:
        log.warning("config sheet unavailable, using defaults", extra={"error": str(e)})
        return {}
    if sheet is None:
        return {}
    out: dict[str, UiValue] = {}
    for r in range(sheet.height):
        key = _normalize_key(decode_text(sheet.cell(r, 0)))
        spec = CONFIG_KEYS.get(key)
        if spec is None:
            continue
        field, kind = spec
        value = _config_value(kind, sheet.cell(r, 1))
        if value is not None:
            out[field] = value
    return out


def _first_round_to(assets: Sequence[Asset]) -> Optional[float]:
    for a in assets:
        if a.round_to is not None and a.round_to > 0:
            return a.round_to
    return None


def build_pricing_config(
    source: TableSource,
    defaults: FeedDefaults,
    user: Optional[str] = None,
    sheet_name: Optional[str] = None,
    now: Optional[datetime] = None,
    locator: Optional[SectionLocator] = None,
    tz: Optional[str] = None,
) -> PricingConfig:
    """
    Read the pricing workbook and assemble one PricingConfig.

    Raises PricingConfigError when the pricing sheet, its boat_id header or
    its boat rows are missing, or when the source cannot be read at all.
    Optional sections that are absent or unreadable come back empty.
    """
    locator = locator or FirstColumnLocator()
    zone = tz or defaults.tz
    name = sheet_name or defaults.pricing_sheet

    try:
        sheet = source.get_sheet(name)
    except TableSourceError as e:
        raise PricingConfigError(f"pricing table unavailable: {e}") from e
    if sheet is None:
        raise PricingConfigError(f"pricing sheet '{name}' not found")

    assets = read_assets(sheet, locator)
    ids = _AssetIds(assets)
    bands = read_bands(sheet, locator, ids)
    dow = read_dow_multipliers(sheet, locator, ids)
    busy = read_busy_levels(sheet, locator, ids)

    overrides = read_config_overrides(source, defaults.config_sheet)
    globals_ = {
        "open": defaults.open,
        "close": defaults.close,
        "slot_minutes": defaults.slot_minutes,
        "default_round_to": defaults.default_round_to,
    }
    globals_.update({k: v for k, v in overrides.items() if k in _GLOBAL_FIELDS})
    ui = {k: v for k, v in overrides.items() if k not in _GLOBAL_FIELDS}

    default_round_to = globals_["default_round_to"]
    if default_round_to is None or default_round_to <= 0:
        default_round_to = _first_round_to(assets)

    try:
        method = resolve_pricing_method(source, user, defaults.users_sheet)
    except TableSourceError as e:
        log.warning("users sheet unavailable, using normal pricing", extra={"error": str(e)})
        method = "normal"
    special = resolve_special_dates(source, assets, zone, defaults.boat_aliases, defaults.special_dates_sheet)

    cfg = PricingConfig(
        tz=zone,
        open=globals_["open"],
        close=globals_["close"],
        slot_minutes=globals_["slot_minutes"],
        boats=assets,
        bands=bands,
        dow_multipliers=dow,
        busy_levels=busy,
        default_round_to=default_round_to,
        special_dates=special,
        ui=ui,
        pricing_method=method,
        generated_at=now or datetime.now(timezone.utc),
        name_lookup={a.id: a.name for a in assets},
    )
    log.info(
        "pricing config built",
        extra={"sheet": sheet.name, "boats": len(assets), "bands": len(bands), "busy_levels": len(busy)},
    )
    return cfg

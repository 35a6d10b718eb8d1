from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.core.errors import PricingConfigError, TableSourceError
from app.schemas.pricing import FeedDefaults
from app.services.pricing_config_service import build_pricing_config, read_config_overrides
from app.sources.table_source import InMemoryTableSource

NOW = datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)
ASSET_HEADER = ["boat_id", "name", "base", "min", "max", "round"]


class FailingSheets:
    """Serves some sheets from memory; reading any other sheet fails."""

    def __init__(self, inner: InMemoryTableSource, readable: set[str]):
        self.inner = inner
        self.readable = readable

    def get_sheet(self, name: str):
        if name not in self.readable:
            raise TableSourceError(f"sheet {name} unreadable")
        return self.inner.get_sheet(name)


def test_full_workbook(table_source, defaults: FeedDefaults) -> None:
    cfg = build_pricing_config(table_source, defaults, user="alice", now=NOW)

    assert [(a.id, a.name, a.base, a.min_rate, a.max_rate, a.round_to) for a in cfg.boats] == [
        ("A", "Sea Breeze", 100.0, 50.0, 500.0, 10.0),
        ("B", "Blue Pearl", 150.0, 80.0, 600.0, None),
    ]
    assert [(b.label, b.start, b.end, b.start_minutes, b.end_minutes) for b in cfg.bands] == [
        ("morning", "08:00", "12:00", 480, 720),
        ("sunset", "18:00", "21:00", 1080, 1260),
    ]
    assert cfg.bands[1].multipliers == {"A": 1.2, "B": 1.3}
    assert cfg.dow_multipliers == {"sat": {"A": 1.1, "B": 1.15}, "sun": {"A": 1.2}}
    assert [(lvl.from_, lvl.to, lvl.comment) for lvl in cfg.busy_levels] == [
        (0.2, 0.5, "quiet"),
        (0.5, 0.8, "busy"),
        (0.8, 1.0, "peak"),
    ]
    assert cfg.busy_levels[2].multipliers == {"A": 1.3, "B": 1.35}

    # Config sheet overrides
    assert cfg.open == "09:00"
    assert cfg.close == "22:00"
    assert cfg.slot_minutes == 60
    assert cfg.ui == {"debug": True, "occupancyMode": "window", "dowMinOccupancy": pytest.approx(0.4)}

    assert cfg.default_round_to == 10.0
    assert cfg.pricing_method == "dynamic"
    assert cfg.tz == "Europe/Zagreb"
    assert cfg.generated_at == NOW
    assert list(cfg.special_dates) == ["2025-08-15", "2025-12-31"]
    assert cfg.name_lookup == {"A": "Sea Breeze", "B": "Blue Pearl"}


def test_wire_format_is_camel_case(table_source, defaults: FeedDefaults) -> None:
    payload = build_pricing_config(table_source, defaults, now=NOW).model_dump(mode="json", by_alias=True)

    assert payload["slotMinutes"] == 60
    assert payload["defaultRoundTo"] == 10.0
    assert payload["pricingMethod"] == "normal"
    assert payload["boats"][0]["min"] == 50.0
    assert payload["boats"][0]["roundTo"] == 10.0
    assert payload["bands"][0]["startMinutes"] == 480
    assert payload["busyLevels"][0]["from"] == 0.2
    assert "sat" in payload["dowMultipliers"]
    assert payload["specialDates"]["2025-08-15"][0]["minOrder"] == 4.0
    assert "nameLookup" not in payload


def test_single_asset_workbook() -> None:
    source = InMemoryTableSource.from_rows(Pricing=[ASSET_HEADER, ["A", "Yacht A", 100, 50, 500, 10]])

    cfg = build_pricing_config(source, FeedDefaults(tz="Europe/Zagreb"), now=NOW)

    assert [a.id for a in cfg.boats] == ["A"]
    assert cfg.default_round_to == 10.0
    assert cfg.bands == []
    assert cfg.dow_multipliers == {}
    assert cfg.busy_levels == []
    assert cfg.special_dates == {}
    assert cfg.ui == {}
    assert cfg.pricing_method == "normal"


def test_configured_round_to_wins_over_asset_round() -> None:
    source = InMemoryTableSource.from_rows(Pricing=[ASSET_HEADER, ["A", "Yacht A", 100, 50, 500, 10]])

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC", default_round_to=5), now=NOW)

    assert cfg.default_round_to == 5.0


def test_no_positive_round_anywhere_leaves_round_unset() -> None:
    source = InMemoryTableSource.from_rows(Pricing=[ASSET_HEADER, ["A", "Yacht A", 100, None, None, 0]])

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)

    assert cfg.default_round_to is None
    assert cfg.boats[0].min_rate is None


def test_zero_assets_is_fatal() -> None:
    source = InMemoryTableSource.from_rows(Pricing=[ASSET_HEADER, [], ["A", "Yacht A", 100]])

    with pytest.raises(PricingConfigError):
        build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)


def test_missing_asset_header_is_fatal() -> None:
    source = InMemoryTableSource.from_rows(Pricing=[["band", "start", "end"], ["day", "10:00", "18:00"]])

    with pytest.raises(PricingConfigError, match="boat_id"):
        build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)


def test_missing_pricing_sheet_is_fatal() -> None:
    source = InMemoryTableSource.from_rows(Config=[["open", "09:00"]])

    with pytest.raises(PricingConfigError, match="not found"):
        build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)


def test_unreadable_source_is_fatal() -> None:
    source = FailingSheets(InMemoryTableSource(), readable=set())

    with pytest.raises(PricingConfigError, match="unavailable"):
        build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)


def test_sheet_name_lookup_is_case_insensitive() -> None:
    source = InMemoryTableSource.from_rows(prices=[ASSET_HEADER, ["A", "Yacht A", 100]])

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC"), sheet_name="Prices", now=NOW)

    assert [a.id for a in cfg.boats] == ["A"]


def test_asset_table_ends_at_first_row_without_id() -> None:
    source = InMemoryTableSource.from_rows(
        Pricing=[ASSET_HEADER, ["A", "Yacht A", 100], ["", "stray note"], ["B", "Yacht B", 150]]
    )

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)

    assert [a.id for a in cfg.boats] == ["A"]


def test_duplicate_asset_keeps_first_row() -> None:
    source = InMemoryTableSource.from_rows(
        Pricing=[ASSET_HEADER, ["A", "First", 100], ["A", "Second", 200]]
    )

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)

    assert [(a.id, a.name, a.base) for a in cfg.boats] == [("A", "First", 100.0)]


def test_asset_name_defaults_to_id() -> None:
    source = InMemoryTableSource.from_rows(Pricing=[ASSET_HEADER, [7, None, 100]])

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)

    assert (cfg.boats[0].id, cfg.boats[0].name) == ("7", "7")


def test_multiplier_columns_for_unknown_boats_are_dropped() -> None:
    source = InMemoryTableSource.from_rows(
        Pricing=[
            ASSET_HEADER,
            ["A", "Yacht A", 100],
            [],
            ["band", "start", "end", "mult a", "Mult Z"],
            ["day", "10:00", "18:00", 1.1, 9.9],
        ]
    )

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)

    assert cfg.bands[0].multipliers == {"A": 1.1}


def test_busy_level_without_upper_bound_runs_to_full() -> None:
    source = InMemoryTableSource.from_rows(
        Pricing=[
            ASSET_HEADER,
            ["A", "Yacht A", 100],
            [],
            ["busyfrom%", "to%", "Mult A"],
            ["90%", None, 1.5],
        ]
    )

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)

    assert [(lvl.from_, lvl.to, lvl.multipliers) for lvl in cfg.busy_levels] == [(0.9, 1.0, {"A": 1.5})]


def test_unreadable_optional_sheets_fall_back(table_source, defaults: FeedDefaults) -> None:
    source = FailingSheets(table_source, readable={"Pricing"})

    cfg = build_pricing_config(source, defaults, user="alice", now=NOW)

    assert [a.id for a in cfg.boats] == ["A", "B"]
    assert cfg.special_dates == {}
    assert cfg.pricing_method == "normal"
    assert cfg.ui == {}
    assert cfg.slot_minutes == 30


def test_read_config_overrides_ignores_unknown_keys(table_source) -> None:
    overrides = read_config_overrides(table_source, "config")

    assert set(overrides) == {"open", "slot_minutes", "debug", "occupancyMode", "dowMinOccupancy"}


def test_read_config_overrides_missing_sheet_is_empty() -> None:
    assert read_config_overrides(InMemoryTableSource(), "Config") == {}


def test_blank_config_values_keep_defaults() -> None:
    source = InMemoryTableSource.from_rows(
        Pricing=[ASSET_HEADER, ["A", "Yacht A", 100, 50, 500, 10]],
        Config=[["open", None], ["occupancy_mode", None], ["slot minutes", "  "], ["debug", None]],
    )

    cfg = build_pricing_config(source, FeedDefaults(tz="UTC"), now=NOW)

    assert read_config_overrides(source, "Config") == {}
    assert cfg.open == "08:00"
    assert cfg.slot_minutes == 30
    assert cfg.ui == {}

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FeedModel(BaseModel):
    """Immutable, camelCase on the wire."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )


# asset id -> multiplier; keys are validated against the asset table before construction
Multipliers = Dict[str, float]


class Asset(FeedModel):
    id: str
    name: str
    base: float
    min_rate: Optional[float] = Field(default=None, alias="min")
    max_rate: Optional[float] = Field(default=None, alias="max")
    round_to: Optional[float] = None


class TimeBand(FeedModel):
    label: str
    start: str  # HH:MM
    end: str    # HH:MM
    start_minutes: int
    end_minutes: int
    multipliers: Multipliers = Field(default_factory=dict)


class OccupancyLevel(FeedModel):
    from_: float = Field(alias="from", ge=0, le=1)
    to: float = Field(ge=0, le=1)
    multipliers: Multipliers = Field(default_factory=dict)
    comment: str = ""


class DaypartMultipliers(FeedModel):
    morning: Optional[float] = None
    day: Optional[float] = None
    sunset: Optional[float] = None
    night: Optional[float] = None


class SpecialDateOverride(FeedModel):
    date: str  # YYYY-MM-DD
    name: str = ""
    boat_id: Optional[str] = None  # None = all boats
    min_order: Optional[float] = None
    multipliers: DaypartMultipliers = Field(default_factory=DaypartMultipliers)
    price24h: Optional[float] = Field(default=None, alias="price24h")
    price12h: Optional[float] = Field(default=None, alias="price12h")
    start: Optional[str] = None  # HH:MM, None = no window
    end: Optional[str] = None
    type: str = ""
    note: str = ""


class FeedDefaults(FeedModel):
    """Operator defaults threaded into the builder."""
    tz: str
    open: str = "08:00"
    close: str = "22:00"
    slot_minutes: int = 30
    default_round_to: Optional[float] = None
    boats: Dict[str, str] = Field(default_factory=dict)          # id -> display name
    boat_aliases: Dict[str, str] = Field(default_factory=dict)   # short code -> boat id
    pricing_sheet: str = "Pricing"
    config_sheet: str = "Config"
    special_dates_sheet: str = "SpecialDates"
    users_sheet: str = "Users"


UiValue = Union[bool, int, float, str]


class PricingConfig(FeedModel):
    tz: str
    open: str
    close: str
    slot_minutes: int
    boats: List[Asset]
    bands: List[TimeBand] = Field(default_factory=list)
    dow_multipliers: Dict[str, Multipliers] = Field(default_factory=dict)
    busy_levels: List[OccupancyLevel] = Field(default_factory=list)
    default_round_to: Optional[float] = None
    special_dates: Dict[str, List[SpecialDateOverride]] = Field(default_factory=dict)
    ui: Dict[str, UiValue] = Field(default_factory=dict)
    pricing_method: str = "normal"  # normal|dynamic
    generated_at: datetime
    name_lookup: Dict[str, str] = Field(default_factory=dict, exclude=True)

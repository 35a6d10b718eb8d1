class FeedError(ValueError):
    """Request-fatal problem; surfaced to the client as {"error": message}."""


class PricingConfigError(FeedError):
    """The pricing table is missing something the config cannot do without."""


class TableSourceError(RuntimeError):
    """The table data source could not be read."""


class CalendarSourceError(RuntimeError):
    """The calendar data source could not be read."""

from typing import Optional

from app.core.logging import get_logger
from app.services.cell_decoders import decode_id, decode_text
from app.sources.table_source import TableSource

log = get_logger(__name__)

PRICING_METHODS = ("normal", "dynamic")
DEFAULT_METHOD = "normal"

_USER_HEADERS = ("user", "user_id", "userid", "id")
_METHOD_HEADERS = ("method", "pricing_method", "pricingmethod", "pricing")


def resolve_pricing_method(source: TableSource, user: Optional[str], sheet_name: str = "Users") -> str:
    """Pricing method for `user` from the users sheet (user | method); "normal" unless listed as dynamic.

    TableSourceError from the source propagates; the caller treats it as "normal".
    """
    uid = (user or "").strip().lower()
    if not uid:
        return DEFAULT_METHOD
    sheet = source.get_sheet(sheet_name)
    if sheet is None or sheet.height == 0:
        return DEFAULT_METHOD

    header = [decode_text(c).strip().lower().replace(" ", "_") for c in sheet.row(0)]
    user_col = next((i for i, h in enumerate(header) if h in _USER_HEADERS), 0)
    method_col = next((i for i, h in enumerate(header) if h in _METHOD_HEADERS), 1)

    for r in range(1, sheet.height):
        if decode_id(sheet.cell(r, user_col)).lower() != uid:
            continue
        method = decode_text(sheet.cell(r, method_col)).lower()
        if method in PRICING_METHODS:
            return method
        log.debug("unknown pricing method, using default", extra={"user": user, "method": method})
        return DEFAULT_METHOD
    return DEFAULT_METHOD

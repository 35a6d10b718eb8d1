"""
Section scanning over a pricing sheet.

A section starts at a header row whose first cell carries a known label
(boat_id, band, dow, busyfrom%) and runs down to the first fully blank row.
Rows whose first cell is empty but which hold something else (stray
formatting, a note in a side column) are separators: they belong to the
section but carry no data.
"""
from __future__ import annotations

import re
from typing import Callable, NamedTuple, Optional, Protocol, Sequence, TypeVar

from app.services.cell_decoders import decode_id, decode_text
from app.sources.table_source import Cell, Sheet

T = TypeVar("T")

_MULT_HEADER = re.compile(r"\bmult\s*(.*)$", re.IGNORECASE)


class MultiplierColumn(NamedTuple):
    asset_id: str
    col: int


def find_header_row(sheet: Sheet, label: str) -> Optional[int]:
    """First row whose first cell equals `label` (case-insensitive), else None."""
    wanted = label.strip().lower()
    for r in range(sheet.height):
        if decode_text(sheet.cell(r, 0)).lower() == wanted:
            return r
    return None


def section_rows(sheet: Sheet, header_row: int) -> list[int]:
    """Row indices belonging to the section under `header_row`."""
    rows: list[int] = []
    for r in range(header_row + 1, sheet.height):
        if not decode_id(sheet.cell(r, 0)) and sheet.row_is_blank(r):
            break
        rows.append(r)
    return rows


def read_section(
    sheet: Sheet,
    header_row: int,
    row_decoder: Callable[[list[Cell]], Optional[T]],
    stop_on_empty_key: bool = False,
) -> list[T]:
    """
    Decode the keyed rows of a section, in sheet order.

    `row_decoder` gets the full row of cells and may return None to skip a
    row without ending the section. With `stop_on_empty_key` the section ends
    at the first row whose first cell is empty, blank or not.
    """
    out: list[T] = []
    for r in section_rows(sheet, header_row):
        if not decode_id(sheet.cell(r, 0)):
            if stop_on_empty_key:
                break
            continue
        item = row_decoder(sheet.row(r))
        if item is not None:
            out.append(item)
    return out


def extract_multiplier_columns(header_cells: Sequence[Cell]) -> list[MultiplierColumn]:
    """Columns whose title contains the word "Mult" followed by an asset id, in grid order."""
    out: list[MultiplierColumn] = []
    for col, cell in enumerate(header_cells):
        m = _MULT_HEADER.search(decode_text(cell))
        if not m:
            continue
        asset_id = m.group(1).strip()
        if asset_id:
            out.append(MultiplierColumn(asset_id, col))
    return out


class SectionLocator(Protocol):
    def find(self, sheet: Sheet, label: str) -> Optional[int]:
        ...


class FirstColumnLocator:
    """Locates section headers by scanning the first column."""

    def find(self, sheet: Sheet, label: str) -> Optional[int]:
        return find_header_row(sheet, label)

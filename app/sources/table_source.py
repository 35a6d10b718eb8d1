"""
Table data sources for the pricing workbook.

A sheet is a rectangular grid of raw-typed cell values plus a parallel grid of
their rendered text. Both grids are padded to the same width, so every
(row, col) inside the sheet yields a Cell.
"""
from __future__ import annotations

import math
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Iterable, NamedTuple, Optional, Protocol, Sequence, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.core.errors import TableSourceError
from app.core.logging import get_logger

log = get_logger(__name__)

RawValue = Union[datetime, date, time, bool, int, float, str, None]


class Cell(NamedTuple):
    """A cell's native value alongside the text a human sees in the sheet."""
    raw: RawValue
    display: str

    @property
    def is_blank(self) -> bool:
        if self.display.strip():
            return False
        if self.raw is None:
            return True
        return isinstance(self.raw, str) and not self.raw.strip()


BLANK = Cell(None, "")


def render_display(value: RawValue, number_format: str = "") -> str:
    """Best-effort rendering of a raw value the way a spreadsheet would show it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        if (value.hour, value.minute, value.second) == (0, 0, 0):
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if "%" in (number_format or ""):
            return f"{value * 100:.15g}%"
        return f"{value:.15g}"
    return str(value)


@dataclass(frozen=True)
class Sheet:
    name: str
    values: list[list[RawValue]]
    display: list[list[str]]
    width: int = field(init=False)

    def __post_init__(self) -> None:
        width = max([len(r) for r in self.values] + [len(r) for r in self.display] + [0])
        object.__setattr__(self, "width", width)

    @classmethod
    def from_values(cls, name: str, rows: Iterable[Sequence[RawValue]]) -> "Sheet":
        """Build a sheet from raw values only, rendering the display grid."""
        values = [list(r) for r in rows]
        display = [[render_display(v) for v in r] for r in values]
        return cls(name=name, values=values, display=display)

    @property
    def height(self) -> int:
        return max(len(self.values), len(self.display))

    def cell(self, row: int, col: int) -> Cell:
        if row < 0 or col < 0 or row >= self.height or col >= self.width:
            return BLANK
        raw_row = self.values[row] if row < len(self.values) else []
        disp_row = self.display[row] if row < len(self.display) else []
        raw = raw_row[col] if col < len(raw_row) else None
        disp = disp_row[col] if col < len(disp_row) else ""
        return Cell(raw, "" if disp is None else str(disp))

    def row(self, row: int) -> list[Cell]:
        return [self.cell(row, c) for c in range(self.width)]

    def row_is_blank(self, row: int) -> bool:
        return all(c.is_blank for c in self.row(row))


class TableSource(Protocol):
    def get_sheet(self, name: str) -> Optional[Sheet]:
        """Return the named sheet (case-insensitive fallback) or None.

        Raises TableSourceError when the source itself cannot be read.
        """
        ...


def _pick_name(names: Iterable[str], wanted: str) -> Optional[str]:
    names = list(names)
    if wanted in names:
        return wanted
    w = (wanted or "").strip().lower()
    for n in names:
        if n.strip().lower() == w:
            return n
    return None


class InMemoryTableSource:
    """Sheets held in memory; used by tests and fixtures."""

    def __init__(self, sheets: Iterable[Sheet] = ()):
        self._sheets = {s.name: s for s in sheets}

    @classmethod
    def from_rows(cls, **sheets: Sequence[Sequence[RawValue]]) -> "InMemoryTableSource":
        return cls(Sheet.from_values(name, rows) for name, rows in sheets.items())

    def get_sheet(self, name: str) -> Optional[Sheet]:
        key = _pick_name(self._sheets.keys(), name)
        return self._sheets[key] if key is not None else None


class XlsxTableSource:
    """Reads sheets from an .xlsx workbook with cached formula values."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._wb = None

    def _workbook(self):
        if self._wb is None:
            try:
                self._wb = load_workbook(self.path, data_only=True)
            except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as e:
                raise TableSourceError(f"cannot open workbook {self.path.name}: {e}") from e
        return self._wb

    def get_sheet(self, name: str) -> Optional[Sheet]:
        wb = self._workbook()
        key = _pick_name(wb.sheetnames, name)
        if key is None:
            return None
        ws = wb[key]
        values: list[list[RawValue]] = []
        display: list[list[str]] = []
        for row in ws.iter_rows():
            values.append([c.value for c in row])
            display.append([render_display(c.value, getattr(c, "number_format", "") or "") for c in row])
        log.debug("read sheet", extra={"sheet": key, "rows": len(values)})
        return Sheet(name=key, values=values, display=display)


def workbook_path(workbook_dir: str, sheet_id: str) -> Path:
    """Map a sheetId to its workbook file; ids are plain file stems, directories are stripped."""
    stem = Path(sheet_id).name or "_"
    return Path(workbook_dir) / f"{stem}.xlsx"

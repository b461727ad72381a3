"""Dataclasses representing a parsed workbook as rows of string cells."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SheetCell:
    """A single non-empty cell resolved to its display string.

    ``column`` is the 1-based column index from the cell reference
    (A=1, B=2, ...), so gaps in storage are visible to callers that
    align by header position.
    """

    column: int
    value: str


@dataclass
class SheetRow:
    """Cells stored for one row, in ascending column order."""

    cells: list[SheetCell] = field(default_factory=list)

    @property
    def values(self) -> list[str]:
        """Cell values in column order, without gap filling."""
        return [cell.value for cell in self.cells]

    @property
    def max_column(self) -> int:
        """Highest column index present in the row (0 for an empty row)."""
        return self.cells[-1].column if self.cells else 0

    def value_at(self, column: int) -> str | None:
        """Return the value stored in ``column``, or None if no cell is stored."""
        for cell in self.cells:
            if cell.column == column:
                return cell.value
            if cell.column > column:
                break
        return None

    def first_value(self) -> str | None:
        """Value of the first stored cell, regardless of its column."""
        return self.cells[0].value if self.cells else None

    def __len__(self) -> int:
        return len(self.cells)


@dataclass(frozen=True)
class SheetHandle:
    """Reference to a worksheet inside an open document."""

    index: int
    name: str


@dataclass
class Sheet:
    """A worksheet read into memory, preserving stored row order."""

    name: str
    rows: list[SheetRow]

    @property
    def header(self) -> SheetRow | None:
        """Row 0 of the sheet, treated as the header row."""
        return self.rows[0] if self.rows else None

    @property
    def data_rows(self) -> list[SheetRow]:
        return self.rows[1:]


@dataclass
class SpreadsheetDocument:
    """Opaque handle to an opened workbook package.

    ``workbook`` is the underlying openpyxl workbook; callers go through
    SpreadsheetReader rather than touching it directly.
    """

    workbook: Any
    sheet_names: list[str]
    source: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

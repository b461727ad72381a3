"""Workbook reader that exposes worksheets as ordered rows of string cells."""

from __future__ import annotations

import io
import zipfile
from collections.abc import Iterator
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, BinaryIO

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from aac_icon_import.spreadsheet import (
    Sheet,
    SheetCell,
    SheetHandle,
    SheetRow,
    SpreadsheetDocument,
)
from aac_icon_import.utils.exceptions import SpreadsheetFormatError
from aac_icon_import.utils.logging import get_logger

logger = get_logger(__name__)

# Errors openpyxl surfaces for a damaged package or unreadable sheet XML.
# XML parse errors from both ElementTree and lxml derive from SyntaxError.
_PACKAGE_ERRORS = (
    zipfile.BadZipFile,
    InvalidFileException,
    KeyError,
    ValueError,
    TypeError,
    OSError,
    SyntaxError,
)

SpreadsheetSource = bytes | str | Path | BinaryIO


def display_string(value: Any) -> str:
    """Render a cell value the way it reads in the spreadsheet.

    openpyxl already substitutes shared-string references and inline
    strings with their text; numbers, booleans and dates are normalised
    here so every cell is a plain string.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


class SpreadsheetReader:
    """Open packaged-XML workbooks (.xlsx) using openpyxl."""

    def open_document(self, source: SpreadsheetSource) -> SpreadsheetDocument:
        """Open a workbook from bytes, a path, or a binary stream.

        Raises:
            SpreadsheetFormatError: If the package is not a readable workbook.
        """
        source_label: str | None = None
        if isinstance(source, bytes):
            stream: Any = io.BytesIO(source)
        elif isinstance(source, (str, Path)):
            path = Path(source)
            source_label = str(path)
            if not path.exists():
                raise SpreadsheetFormatError(
                    f"Workbook not found: {path}", file_path=source_label
                )
            stream = path
        else:
            stream = source

        try:
            workbook = load_workbook(filename=stream, data_only=True, read_only=False)
        except _PACKAGE_ERRORS as e:
            logger.warning(
                "Failed to open workbook", source=source_label, error=str(e)
            )
            raise SpreadsheetFormatError(
                f"Failed to open Excel file: {e}",
                file_path=source_label,
                details={"reason": type(e).__name__},
            ) from e

        sheet_names = [ws.title for ws in workbook.worksheets]
        logger.debug("Workbook opened", source=source_label, sheets=len(sheet_names))
        return SpreadsheetDocument(
            workbook=workbook,
            sheet_names=sheet_names,
            source=source_label,
            metadata={"sheet_count": len(sheet_names)},
        )

    def list_sheets(self, document: SpreadsheetDocument) -> list[SheetHandle]:
        """List worksheets in workbook order."""
        return [
            SheetHandle(index=index, name=name)
            for index, name in enumerate(document.sheet_names)
        ]

    def read_sheet(self, document: SpreadsheetDocument, handle: SheetHandle) -> Sheet:
        """Read one worksheet into memory.

        Raises:
            SpreadsheetFormatError: If the worksheet cannot be read.
        """
        try:
            worksheet: Worksheet = document.workbook.worksheets[handle.index]
            rows = self._read_rows(worksheet)
        except (IndexError, *_PACKAGE_ERRORS) as e:
            raise SpreadsheetFormatError(
                f"Failed to read worksheet '{handle.name}': {e}",
                sheet_name=handle.name,
                file_path=document.source,
            ) from e
        return Sheet(name=handle.name, rows=rows)

    def iter_sheets(self, document: SpreadsheetDocument) -> Iterator[Sheet]:
        """Lazily read worksheets in order, so callers can stop at a match."""
        for handle in self.list_sheets(document):
            yield self.read_sheet(document, handle)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _read_rows(worksheet: Worksheet) -> list[SheetRow]:
        """Collect stored cells row by row.

        Empty cells are not materialised, so a row only carries the
        columns that actually hold a value. Rows with no values at all
        are dropped.
        """
        rows: list[SheetRow] = []
        for row_cells in worksheet.iter_rows():
            cells = [
                SheetCell(column=cell.column, value=display_string(cell.value))
                for cell in row_cells
                if cell.value is not None
            ]
            if not cells:
                continue
            cells.sort(key=lambda c: c.column)
            rows.append(SheetRow(cells=cells))
        return rows

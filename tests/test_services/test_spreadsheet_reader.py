"""Tests for the openpyxl-backed SpreadsheetReader."""

from __future__ import annotations

import io
import zipfile
from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook

from aac_icon_import.services.spreadsheet_reader import (
    SpreadsheetReader,
    display_string,
)
from aac_icon_import.spreadsheet import SheetHandle
from aac_icon_import.utils.exceptions import SpreadsheetFormatError
from tests.fixtures import build_workbook


@pytest.fixture
def reader() -> SpreadsheetReader:
    return SpreadsheetReader()


class TestOpenDocument:
    def test_open_from_bytes_lists_sheets_in_order(self, reader: SpreadsheetReader) -> None:
        data = build_workbook({"Folders": [["Folder"]], "Icons": [["icon"]]})

        doc = reader.open_document(data)

        assert reader.list_sheets(doc) == [
            SheetHandle(index=0, name="Folders"),
            SheetHandle(index=1, name="Icons"),
        ]
        assert doc.metadata["sheet_count"] == 2

    def test_open_from_path(self, reader: SpreadsheetReader, tmp_path: Path) -> None:
        path = tmp_path / "icons.xlsx"
        path.write_bytes(build_workbook({"Sheet1": [["a"]]}))

        doc = reader.open_document(path)

        assert doc.source == str(path)
        assert doc.sheet_names == ["Sheet1"]

    def test_open_from_stream(self, reader: SpreadsheetReader) -> None:
        stream = io.BytesIO(build_workbook({"Only": [["x"]]}))
        assert reader.open_document(stream).sheet_names == ["Only"]

    def test_garbage_bytes_raise_format_error(self, reader: SpreadsheetReader) -> None:
        with pytest.raises(SpreadsheetFormatError) as exc_info:
            reader.open_document(b"this is not a zip package")

        assert exc_info.value.error_code.value == "E1003"

    def test_zip_without_workbook_raises_format_error(
        self, reader: SpreadsheetReader
    ) -> None:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("hello.txt", "not a workbook")

        with pytest.raises(SpreadsheetFormatError):
            reader.open_document(buf.getvalue())

    def test_missing_path_raises_format_error(
        self, reader: SpreadsheetReader, tmp_path: Path
    ) -> None:
        with pytest.raises(SpreadsheetFormatError, match="not found"):
            reader.open_document(tmp_path / "missing.xlsx")


class TestReadSheet:
    def test_rows_keep_order_and_drop_empty_rows(self, reader: SpreadsheetReader) -> None:
        data = build_workbook(
            {
                "Icons": [
                    ["icon", "folder", "s3link"],
                    [None, None, None],
                    ["Juice", "Snacks", "http://x/juice.png"],
                    ["Milk", "Snacks", "http://x/milk.png"],
                ]
            }
        )
        doc = reader.open_document(data)

        sheet = reader.read_sheet(doc, reader.list_sheets(doc)[0])

        assert sheet.name == "Icons"
        assert [row.values for row in sheet.rows] == [
            ["icon", "folder", "s3link"],
            ["Juice", "Snacks", "http://x/juice.png"],
            ["Milk", "Snacks", "http://x/milk.png"],
        ]

    def test_gaps_are_not_filled(self, reader: SpreadsheetReader) -> None:
        data = build_workbook({"S": [["a", None, "c"]]})
        doc = reader.open_document(data)

        row = reader.read_sheet(doc, reader.list_sheets(doc)[0]).rows[0]

        assert row.values == ["a", "c"]
        assert [cell.column for cell in row.cells] == [1, 3]
        assert row.value_at(2) is None
        assert row.max_column == 3

    def test_shared_and_inline_strings_read_the_same(
        self, reader: SpreadsheetReader
    ) -> None:
        # openpyxl writes repeated text through the shared-string table.
        data = build_workbook({"S": [["Snacks"], ["Snacks"], ["Snacks"]]})
        doc = reader.open_document(data)

        sheet = reader.read_sheet(doc, reader.list_sheets(doc)[0])

        assert [row.first_value() for row in sheet.rows] == ["Snacks"] * 3

    def test_unknown_handle_raises_format_error(self, reader: SpreadsheetReader) -> None:
        doc = reader.open_document(build_workbook({"S": [["a"]]}))

        with pytest.raises(SpreadsheetFormatError) as exc_info:
            reader.read_sheet(doc, SheetHandle(index=5, name="Ghost"))

        assert exc_info.value.sheet_name == "Ghost"

    def test_iter_sheets_is_lazy(self, reader: SpreadsheetReader) -> None:
        doc = reader.open_document(build_workbook({"A": [["1"]], "B": [["2"]]}))

        sheets = reader.iter_sheets(doc)

        assert next(sheets).name == "A"
        assert next(sheets).name == "B"
        with pytest.raises(StopIteration):
            next(sheets)


class TestDisplayString:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("text", "text"),
            (True, "TRUE"),
            (False, "FALSE"),
            (3.0, "3"),
            (3.5, "3.5"),
            (42, "42"),
            (datetime(2024, 1, 15, 9, 30), "2024-01-15T09:30:00"),
        ],
    )
    def test_display_string(self, value: object, expected: str) -> None:
        assert display_string(value) == expected

    def test_numeric_cells_become_strings(self, reader: SpreadsheetReader) -> None:
        wb = Workbook()
        ws = wb.active
        ws.title = "Numbers"
        ws["A1"] = 7
        ws["B1"] = 2.0
        buf = io.BytesIO()
        wb.save(buf)

        doc = reader.open_document(buf.getvalue())
        row = reader.read_sheet(doc, reader.list_sheets(doc)[0]).rows[0]

        assert row.values == ["7", "2"]

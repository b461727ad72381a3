"""Worksheet classification by header row.

A workbook for bulk import carries up to two kinds of sheets:

- an Icons sheet whose header names an icon column, a folder column and an
  image link column (``s3link`` or ``s3 link``), in any order;
- a Folders sheet holding one folder name per row in its first stored cell,
  optionally headed ``folder``, ``folders`` or ``name``.

Sheet names are not consulted. Callers try sheets in workbook order and
keep the first one of each kind.
"""

from aac_icon_import.models import SheetKind
from aac_icon_import.spreadsheet import Sheet, SheetRow

ICON_HEADER = "icon"
FOLDER_HEADER = "folder"
LINK_HEADERS = ("s3link", "s3 link")
FOLDERS_SHEET_HEADERS = frozenset({"folder", "folders", "name"})


def normalize_header(text: str) -> str:
    """Lowercase and trim a header cell for comparison."""
    return text.strip().lower()


def is_folders_header(row: SheetRow) -> bool:
    """True when the row's first stored cell is a Folders sheet heading."""
    first = row.first_value()
    return first is not None and normalize_header(first) in FOLDERS_SHEET_HEADERS


class SheetClassifier:
    """Decide whether a sheet holds folders, icons, or neither."""

    def classify(self, sheet: Sheet) -> SheetKind:
        header = sheet.header
        if header is None:
            return SheetKind.UNRECOGNIZED

        header_text = " ".join(header.values).lower()
        has_icon = ICON_HEADER in header_text
        has_link = any(token in header_text for token in LINK_HEADERS)
        has_folder = FOLDER_HEADER in header_text

        if has_icon and has_link and has_folder:
            return SheetKind.ICONS
        if not has_icon and not has_link:
            return SheetKind.FOLDERS
        return SheetKind.UNRECOGNIZED

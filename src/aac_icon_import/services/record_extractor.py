"""Turn classified worksheets into folder and icon import records."""

from dataclasses import dataclass

from aac_icon_import.models import FolderRecord, IconRecord
from aac_icon_import.services.sheet_classifier import (
    FOLDER_HEADER,
    ICON_HEADER,
    LINK_HEADERS,
    is_folders_header,
    normalize_header,
)
from aac_icon_import.spreadsheet import Sheet, SheetRow
from aac_icon_import.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class IconColumns:
    """1-based column positions of the Icons sheet fields."""

    icon: int
    folder: int
    link: int

    @property
    def last(self) -> int:
        return max(self.icon, self.folder, self.link)


def locate_icon_columns(header: SheetRow) -> IconColumns | None:
    """Find the icon, folder and link columns by exact header name.

    The first matching header wins for each field. Returns None when any
    of the three is missing.
    """
    icon_col = folder_col = link_col = None
    for cell in header.cells:
        name = normalize_header(cell.value)
        if name == ICON_HEADER and icon_col is None:
            icon_col = cell.column
        elif name == FOLDER_HEADER and folder_col is None:
            folder_col = cell.column
        elif name in LINK_HEADERS and link_col is None:
            link_col = cell.column

    if icon_col is None or folder_col is None or link_col is None:
        return None
    return IconColumns(icon=icon_col, folder=folder_col, link=link_col)


class ImportRecordExtractor:
    """Extract typed records from sheets, silently dropping incomplete rows."""

    def extract_icons(self, sheet: Sheet) -> list[IconRecord]:
        header = sheet.header
        columns = locate_icon_columns(header) if header is not None else None
        if columns is None:
            logger.info("Sheet lacks icon/folder/link columns", sheet=sheet.name)
            return []

        records: list[IconRecord] = []
        for row in sheet.data_rows:
            if row.max_column < columns.last:
                continue

            icon_name = (row.value_at(columns.icon) or "").strip()
            folder_name = (row.value_at(columns.folder) or "").strip()
            image_link = (row.value_at(columns.link) or "").strip()

            if icon_name and folder_name and image_link:
                records.append(
                    IconRecord(
                        icon_name=icon_name,
                        folder_name=folder_name,
                        image_link=image_link,
                    )
                )
            else:
                logger.debug("Dropping incomplete icon row", sheet=sheet.name)

        logger.info(
            "Icon records extracted",
            sheet=sheet.name,
            records=len(records),
            data_rows=len(sheet.data_rows),
        )
        return records

    def extract_folders(self, sheet: Sheet) -> list[FolderRecord]:
        rows = sheet.rows
        if rows and is_folders_header(rows[0]):
            rows = rows[1:]

        records: list[FolderRecord] = []
        for row in rows:
            name = (row.first_value() or "").strip()
            if name:
                records.append(FolderRecord(name=name))

        logger.info("Folder records extracted", sheet=sheet.name, records=len(records))
        return records

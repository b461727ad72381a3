"""Merge new folders and icons into the folder store.

The reconciler only ever appends: new empty folders go to the end of the
collection and new icons to the end of their target folder. Existing
folders and icons keep their identity and content.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from uuid import UUID

from aac_icon_import.board import Folder, Icon
from aac_icon_import.models import FolderRecord, ImportSummary
from aac_icon_import.services.folder_store import FolderStore
from aac_icon_import.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ReconcileResult:
    """What a batch changed in the store."""

    created_folders: list[Folder] = field(default_factory=list)
    updated_folder_ids: set[UUID] = field(default_factory=set)
    created_icon_count: int = 0

    @property
    def affected_folder_count(self) -> int:
        created_ids = {folder.id for folder in self.created_folders}
        return len(created_ids | self.updated_folder_ids)

    def to_summary(
        self,
        skipped_icon_count: int = 0,
        failed_fetch_count: int = 0,
        cancelled: bool = False,
    ) -> ImportSummary:
        return ImportSummary(
            created_icon_count=self.created_icon_count,
            skipped_icon_count=skipped_icon_count,
            affected_folder_count=self.affected_folder_count,
            created_folder_count=len(self.created_folders),
            failed_fetch_count=failed_fetch_count,
            cancelled=cancelled,
        )


class ImportReconciler:
    def create_folders(
        self,
        records: Iterable[FolderRecord],
        store: FolderStore,
        result: ReconcileResult | None = None,
    ) -> ReconcileResult:
        """Append one new empty folder per record."""
        result = result if result is not None else ReconcileResult()
        for record in records:
            folder = store.append_folder(Folder(name=record.name, is_default=False))
            result.created_folders.append(folder)
            logger.info("Folder created", folder=folder.name)
        return result

    def attach_icons(
        self,
        icons_by_folder: Mapping[str, Sequence[Icon]],
        store: FolderStore,
        result: ReconcileResult | None = None,
    ) -> ReconcileResult:
        """Append icons to the first folder with each exact name.

        A folder that cannot be found is created on the spot with its icons.
        """
        result = result if result is not None else ReconcileResult()
        for folder_name, icons in icons_by_folder.items():
            if not icons:
                continue
            folder, created = store.append_icons_to_named_folder(folder_name, icons)
            if created:
                logger.warning(
                    "Target folder missing, created during reconcile",
                    folder=folder_name,
                )
                result.created_folders.append(folder)
            result.updated_folder_ids.add(folder.id)
            result.created_icon_count += len(icons)
        return result

    def reconcile(
        self,
        folders_to_create: Iterable[FolderRecord],
        icons_by_folder: Mapping[str, Sequence[Icon]],
        store: FolderStore,
    ) -> ReconcileResult:
        result = self.create_folders(folders_to_create, store)
        return self.attach_icons(icons_by_folder, store, result)

"""Split import records into those to create and those already present.

Matching rules for folders and icons differ, and existing boards rely on
both:

- folders match by exact, case-sensitive name ("Snacks" != "snacks");
- icons match by case-insensitive title, only within the folder named by
  the record, against titles captured before the batch starts.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from aac_icon_import.board import Folder
from aac_icon_import.models import FolderRecord, IconRecord
from aac_icon_import.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FolderPartition:
    to_create: list[FolderRecord] = field(default_factory=list)
    to_skip: list[FolderRecord] = field(default_factory=list)


@dataclass
class IconPartition:
    """Icons to create grouped by folder name, plus the duplicates skipped.

    ``records`` keeps extraction order across folders; ``by_folder`` keeps
    the first-seen order of folder names.
    """

    records: list[IconRecord] = field(default_factory=list)
    by_folder: dict[str, list[IconRecord]] = field(default_factory=dict)
    skipped: list[IconRecord] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(frozen=True)
class TitleSnapshot:
    """Lowercased icon titles per folder name, frozen at batch start.

    When several folders share a name, the first one is used, matching how
    the reconciler picks its target folder.
    """

    titles: dict[str, frozenset[str]]

    @classmethod
    def capture(cls, folders: Iterable[Folder]) -> TitleSnapshot:
        titles: dict[str, frozenset[str]] = {}
        for folder in folders:
            if folder.name not in titles:
                titles[folder.name] = frozenset(t.lower() for t in folder.icon_titles())
        return cls(titles=titles)

    def contains(self, folder_name: str, title: str) -> bool:
        existing = self.titles.get(folder_name)
        return existing is not None and title.lower() in existing


class DeduplicationEngine:
    """Partition candidate records against existing folder state."""

    def partition_folders(
        self, candidates: Iterable[FolderRecord], existing_folders: Iterable[Folder]
    ) -> FolderPartition:
        """Folders to create, each name at most once, and the ones skipped.

        Repeats of a name within the same batch are skipped after the first.
        """
        seen = {folder.name for folder in existing_folders}
        partition = FolderPartition()
        for record in candidates:
            name = record.name.strip()
            if name in seen:
                partition.to_skip.append(record)
                continue
            seen.add(name)
            partition.to_create.append(FolderRecord(name=name))
        return partition

    def partition_icons(
        self, candidates: Iterable[IconRecord], snapshot: TitleSnapshot
    ) -> IconPartition:
        """Icons to create and icons already present in their target folder.

        Records are only compared with the snapshot, never with each other:
        two rows with the same folder and title are both created.
        """
        partition = IconPartition()
        for record in candidates:
            if snapshot.contains(record.folder_name, record.icon_name):
                logger.info(
                    "Skipping existing icon",
                    icon=record.icon_name,
                    folder=record.folder_name,
                )
                partition.skipped.append(record)
                continue
            partition.records.append(record)
            partition.by_folder.setdefault(record.folder_name, []).append(record)
        return partition

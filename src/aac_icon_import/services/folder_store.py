"""Thread-safe owner of the persistent folder collection.

The store is shared by interactive edits and import batches. Every
mutation runs as one step under a re-entrant lock, so readers never see a
half-applied change. When a path is configured the whole collection is
written after each mutation by replacing the file atomically.

Readers get deep copies; changing a returned model never changes the store.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from threading import RLock
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from aac_icon_import.board import (
    Folder,
    FolderCollection,
    Icon,
    find_folder_by_name,
    quick_access_icons,
)
from aac_icon_import.utils.exceptions import (
    ErrorCode,
    FileError,
    FolderNotFoundError,
    IconNotFoundError,
    ProtectedFolderError,
    ValidationError,
)
from aac_icon_import.utils.logging import get_logger

logger = get_logger(__name__)


def _as_uuid(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _require_name(name: str, field: str = "name") -> str:
    stripped = name.strip()
    if not stripped:
        raise ValidationError("Folder name must not be empty", field=field)
    return stripped


class FolderStore:
    """In-memory folder collection with optional JSON persistence."""

    def __init__(
        self,
        path: str | Path | None = None,
        folders: Iterable[Folder] | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self._folders: list[Folder] = [f.model_copy(deep=True) for f in folders or []]
        self._lock = RLock()

    @classmethod
    def open(
        cls,
        path: str | Path,
        default_folder_names: Sequence[str] = (),
    ) -> FolderStore:
        """Load the store from ``path``, seeding default folders if it is new."""
        store = cls(path)
        if store.path is not None and store.path.exists():
            store.load()
        else:
            for name in default_folder_names:
                store._folders.append(Folder(name=name, is_default=True))
            store.save()
            logger.info(
                "Folder store created",
                path=str(path),
                default_folders=len(default_folder_names),
            )
        return store

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        if self.path is None:
            return
        try:
            raw = self.path.read_text(encoding="utf-8")
            collection = FolderCollection.model_validate_json(raw)
        except OSError as e:
            raise FileError(
                f"Cannot read folder store: {e}",
                error_code=ErrorCode.FILE_READ_ERROR,
                file_path=str(self.path),
            ) from e
        except PydanticValidationError as e:
            raise FileError(
                "Folder store is not a valid folder collection",
                error_code=ErrorCode.FILE_READ_ERROR,
                file_path=str(self.path),
                details={"errors": e.error_count()},
            ) from e

        with self._lock:
            self._folders = collection.folders
        logger.debug("Folder store loaded", path=str(self.path), folders=len(collection.folders))

    def save(self) -> None:
        if self.path is None:
            return
        with self._lock:
            payload = FolderCollection(folders=self._folders).model_dump_json()
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        handle.write(payload)
                    os.replace(tmp_name, self.path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise FileError(
                    f"Cannot write folder store: {e}",
                    error_code=ErrorCode.FILE_WRITE_ERROR,
                    file_path=str(self.path),
                ) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> list[Folder]:
        """Deep copy of every folder, in collection order."""
        with self._lock:
            return [folder.model_copy(deep=True) for folder in self._folders]

    def list_folders(self) -> list[Folder]:
        return self.snapshot()

    def get_folder(self, folder_id: UUID | str) -> Folder:
        with self._lock:
            return self._folder(folder_id).model_copy(deep=True)

    def find_folder_by_name(self, name: str) -> Folder | None:
        with self._lock:
            folder = find_folder_by_name(self._folders, name)
            return folder.model_copy(deep=True) if folder is not None else None

    def quick_access(self) -> list[tuple[Folder, Icon]]:
        with self._lock:
            return [
                (folder.model_copy(deep=True), icon.model_copy(deep=True))
                for folder, icon in quick_access_icons(self._folders)
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._folders)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append_folder(self, folder: Folder) -> Folder:
        with self._lock:
            self._folders.append(folder.model_copy(deep=True))
            self.save()
            return folder.model_copy(deep=True)

    def append_icons(self, folder_id: UUID | str, icons: Sequence[Icon]) -> Folder:
        """Append ``icons`` to the end of a folder's icon list in order."""
        with self._lock:
            folder = self._folder(folder_id)
            folder.icons.extend(icon.model_copy(deep=True) for icon in icons)
            self.save()
            return folder.model_copy(deep=True)

    def append_icons_to_named_folder(
        self, name: str, icons: Sequence[Icon]
    ) -> tuple[Folder, bool]:
        """Append icons to the first folder named ``name``, creating it if absent.

        Returns the updated folder and whether it had to be created.
        """
        with self._lock:
            folder = find_folder_by_name(self._folders, name)
            created = folder is None
            if folder is None:
                folder = Folder(name=name)
                self._folders.append(folder)
            folder.icons.extend(icon.model_copy(deep=True) for icon in icons)
            self.save()
            return folder.model_copy(deep=True), created

    def add_folder(self, name: str, is_default: bool = False) -> Folder:
        folder = Folder(name=_require_name(name), is_default=is_default)
        return self.append_folder(folder)

    def rename_folder(self, folder_id: UUID | str, name: str) -> Folder:
        new_name = _require_name(name)
        with self._lock:
            folder = self._folder(folder_id)
            folder.name = new_name
            self.save()
            return folder.model_copy(deep=True)

    def delete_folder(self, folder_id: UUID | str) -> None:
        with self._lock:
            folder = self._folder(folder_id)
            if folder.is_default:
                raise ProtectedFolderError(folder.name)
            self._folders.remove(folder)
            self.save()
        logger.info("Folder deleted", folder=folder.name)

    def add_icon(
        self,
        folder_id: UUID | str,
        title: str,
        image_data: bytes,
        audio_data: bytes | None = None,
    ) -> Icon:
        icon = Icon(title=title, image_data=image_data, audio_data=audio_data)
        self.append_icons(folder_id, [icon])
        return icon

    def delete_icon(self, icon_id: UUID | str) -> None:
        with self._lock:
            folder, icon = self._icon(icon_id)
            folder.icons.remove(icon)
            self.save()

    def set_quick_access(self, icon_id: UUID | str, flag: bool) -> Icon:
        with self._lock:
            _, icon = self._icon(icon_id)
            icon.is_quick_access = flag
            self.save()
            return icon.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Lookups on live models; callers must hold the lock
    # ------------------------------------------------------------------

    def _folder(self, folder_id: UUID | str) -> Folder:
        wanted = _as_uuid(folder_id)
        for folder in self._folders:
            if folder.id == wanted:
                return folder
        raise FolderNotFoundError(str(folder_id))

    def _icon(self, icon_id: UUID | str) -> tuple[Folder, Icon]:
        wanted = _as_uuid(icon_id)
        if wanted is not None:
            for folder in self._folders:
                icon = folder.find_icon(wanted)
                if icon is not None:
                    return folder, icon
        raise IconNotFoundError(str(icon_id))

"""Folder and icon models for the picture board."""

from __future__ import annotations

import base64
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_serializer, field_validator


def _decode_blob(value: Any) -> Any:
    # JSON payloads carry blobs as base64 strings; Python callers pass bytes.
    if isinstance(value, str):
        return base64.b64decode(value)
    return value


class Icon(BaseModel):
    """One tappable picture with a spoken title.

    When ``audio_data`` is absent the title is spoken with text-to-speech.
    """

    id: UUID = Field(default_factory=uuid4)
    title: str
    image_data: bytes = b""
    audio_data: bytes | None = None
    is_quick_access: bool = False

    @property
    def has_custom_audio(self) -> bool:
        return self.audio_data is not None

    @field_validator("image_data", "audio_data", mode="before")
    @classmethod
    def _decode_blobs(cls, v: Any) -> Any:
        return _decode_blob(v)

    @field_serializer("image_data", "audio_data", when_used="json")
    def _encode_blobs(self, v: bytes | None) -> str | None:
        return base64.b64encode(v).decode("ascii") if v is not None else None


class Folder(BaseModel):
    """Named container of icons.

    Folders flagged ``is_default`` cannot be deleted. Names are not unique
    by construction; imports treat the first exact name match as the target.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str
    icons: list[Icon] = Field(default_factory=list)
    is_default: bool = False
    image_data: bytes | None = None

    @field_validator("image_data", mode="before")
    @classmethod
    def _decode_image(cls, v: Any) -> Any:
        return _decode_blob(v)

    @field_serializer("image_data", when_used="json")
    def _encode_image(self, v: bytes | None) -> str | None:
        return base64.b64encode(v).decode("ascii") if v is not None else None

    def icon_titles(self) -> list[str]:
        return [icon.title for icon in self.icons]

    def find_icon(self, icon_id: UUID) -> Icon | None:
        for icon in self.icons:
            if icon.id == icon_id:
                return icon
        return None


class FolderCollection(BaseModel):
    """Top-level document persisted by the folder store."""

    folders: list[Folder] = Field(default_factory=list)


def find_folder_by_name(folders: list[Folder], name: str) -> Folder | None:
    """Return the first folder whose name equals ``name`` exactly."""
    for folder in folders:
        if folder.name == name:
            return folder
    return None


def quick_access_icons(folders: list[Folder]) -> list[tuple[Folder, Icon]]:
    """Icons marked for Quick Access, in folder then icon order."""
    return [
        (folder, icon)
        for folder in folders
        for icon in folder.icons
        if icon.is_quick_access
    ]

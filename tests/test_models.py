"""Tests for import summaries and board models."""

from uuid import uuid4

import pytest

from aac_icon_import.board import (
    Folder,
    FolderCollection,
    Icon,
    find_folder_by_name,
    quick_access_icons,
)
from aac_icon_import.models import ImportSummary


class TestImportSummary:
    @pytest.mark.parametrize(
        ("summary", "expected"),
        [
            (
                ImportSummary(created_icon_count=2, affected_folder_count=1),
                "Import complete! Created 2 icons in 1 folders.",
            ),
            (
                ImportSummary(
                    created_icon_count=1, skipped_icon_count=4, affected_folder_count=2
                ),
                "Import complete! Created 1 new icons, skipped 4 existing icons in 2 folders.",
            ),
            (
                ImportSummary(
                    created_icon_count=3,
                    skipped_icon_count=1,
                    affected_folder_count=1,
                    cancelled=True,
                ),
                "Import cancelled. Created 3 icons in 1 folders.",
            ),
        ],
    )
    def test_summary_text(self, summary: ImportSummary, expected: str) -> None:
        assert summary.summary_text() == expected

    def test_failed_fetches_do_not_change_text(self) -> None:
        summary = ImportSummary(
            created_icon_count=1, affected_folder_count=1, failed_fetch_count=5
        )
        assert summary.summary_text() == "Import complete! Created 1 icons in 1 folders."


class TestIcon:
    def test_defaults(self) -> None:
        icon = Icon(title="Juice")

        assert icon.image_data == b""
        assert not icon.has_custom_audio
        assert not icon.is_quick_access
        assert icon.id != Icon(title="Juice").id

    def test_json_blobs_are_base64(self) -> None:
        icon = Icon(title="Juice", image_data=b"\xff\xd8", audio_data=b"RIFF")

        restored = Icon.model_validate_json(icon.model_dump_json())

        assert restored == icon
        assert '"image_data":"/9g="' in icon.model_dump_json()

    def test_python_dump_keeps_bytes(self) -> None:
        assert Icon(title="Juice", image_data=b"x").model_dump()["image_data"] == b"x"


class TestFolderHelpers:
    def test_find_folder_by_name_first_exact_match(self) -> None:
        first = Folder(name="Food")
        folders = [Folder(name="food"), first, Folder(name="Food")]

        assert find_folder_by_name(folders, "Food") is first
        assert find_folder_by_name(folders, "FOOD") is None

    def test_find_icon(self) -> None:
        icon = Icon(title="Juice")
        folder = Folder(name="Snacks", icons=[Icon(title="Chips"), icon])

        assert folder.find_icon(icon.id) is icon
        assert folder.find_icon(uuid4()) is None
        assert folder.icon_titles() == ["Chips", "Juice"]

    def test_quick_access_order(self) -> None:
        a = Folder(name="A", icons=[Icon(title="a1", is_quick_access=True), Icon(title="a2")])
        b = Folder(name="B", icons=[Icon(title="b1", is_quick_access=True)])

        entries = quick_access_icons([a, b])

        assert [(f.name, i.title) for f, i in entries] == [("A", "a1"), ("B", "b1")]

    def test_collection_round_trip_keeps_ids(self) -> None:
        folder = Folder(name="General", is_default=True, icons=[Icon(title="Yes")])
        collection = FolderCollection(folders=[folder])

        restored = FolderCollection.model_validate_json(collection.model_dump_json())

        assert restored.folders[0].id == folder.id
        assert restored.folders[0].icons[0].id == folder.icons[0].id
        assert restored.folders[0].is_default

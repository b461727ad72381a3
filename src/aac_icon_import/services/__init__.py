"""Services for the bulk icon import pipeline."""

from aac_icon_import.services.folder_store import FolderStore
from aac_icon_import.services.import_pipeline import IconImportPipeline
from aac_icon_import.services.progress import (
    CancellationToken,
    ImportProgressReporter,
)

__all__ = [
    "CancellationToken",
    "FolderStore",
    "IconImportPipeline",
    "ImportProgressReporter",
]

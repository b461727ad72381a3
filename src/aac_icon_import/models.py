"""Import records, summaries and API request/response models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SheetKind(str, Enum):
    """What a worksheet's header row says it contains."""

    FOLDERS = "folders"
    ICONS = "icons"
    UNRECOGNIZED = "unrecognized"


class ImportPhase(str, Enum):
    """States an import batch moves through.

    Idle -> ParsingFolders -> CreatingFolders -> ParsingIcons ->
    FetchingAndCreating -> Reconciling -> Done, or Idle -> Failed when the
    workbook cannot be opened.
    """

    IDLE = "idle"
    PARSING_FOLDERS = "parsing_folders"
    CREATING_FOLDERS = "creating_folders"
    PARSING_ICONS = "parsing_icons"
    FETCHING_AND_CREATING = "fetching_and_creating"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class FolderRecord:
    """A folder name read from a Folders sheet."""

    name: str


@dataclass(frozen=True)
class IconRecord:
    """One icon row: title, target folder and image link, all non-empty."""

    icon_name: str
    folder_name: str
    image_link: str


class ImportSummary(BaseModel):
    """Counts produced by one import batch.

    Records dropped for failed downloads are counted in
    ``failed_fetch_count`` only, never as created or skipped.
    """

    created_icon_count: int = 0
    skipped_icon_count: int = 0
    affected_folder_count: int = 0
    created_folder_count: int = 0
    failed_fetch_count: int = 0
    cancelled: bool = False

    def summary_text(self) -> str:
        """Human-readable result shown to the user when the batch ends."""
        folders = self.affected_folder_count
        if self.cancelled:
            return (
                f"Import cancelled. Created {self.created_icon_count} icons "
                f"in {folders} folders."
            )
        if self.skipped_icon_count > 0:
            return (
                f"Import complete! Created {self.created_icon_count} new icons, "
                f"skipped {self.skipped_icon_count} existing icons in {folders} folders."
            )
        return f"Import complete! Created {self.created_icon_count} icons in {folders} folders."


# =============================================================================
# API models
# =============================================================================


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    version: str


class JobStatus(str, Enum):
    """Status of an import job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ImportUploadResponse(BaseModel):
    """Response model for the workbook upload endpoint."""

    job_id: str = Field(..., description="Unique identifier for the import job")
    filename: str = Field(..., description="Original filename of uploaded workbook")
    file_size: int = Field(..., description="Size of uploaded workbook in bytes")
    status: JobStatus = Field(
        default=JobStatus.PENDING, description="Initial job status"
    )
    message: str = Field(..., description="Status message")


class ImportJobResponse(BaseModel):
    """Response model for the import job status endpoint."""

    job_id: str
    status: JobStatus
    filename: str
    created_at: datetime
    updated_at: datetime
    phase: ImportPhase = ImportPhase.IDLE
    fraction_complete: float = Field(0.0, ge=0.0, le=1.0)
    status_text: str | None = None
    summary: ImportSummary | None = None
    summary_text: str | None = None
    error_message: str | None = None
    error_code: str | None = None


class IconResponse(BaseModel):
    """Icon metadata without image or audio blobs."""

    id: str
    title: str
    has_custom_audio: bool
    is_quick_access: bool


class FolderResponse(BaseModel):
    """Folder metadata with its icons."""

    id: str
    name: str
    is_default: bool
    icon_count: int
    icons: list[IconResponse]


class QuickAccessEntry(BaseModel):
    """An icon shown in the Quick Access view, with its owning folder."""

    folder_id: str
    folder_name: str
    icon: IconResponse


class ErrorDetail(BaseModel):
    """Error detail model for API error responses."""

    detail: str = Field(..., description="Human-readable error message")
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code (e.g., 'E1003')",
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details for debugging",
    )
    request_id: str | None = Field(
        default=None,
        description="Request ID for error correlation",
    )

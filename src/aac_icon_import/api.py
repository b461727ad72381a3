"""FastAPI application for the bulk icon importer."""

import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import (
    BackgroundTasks,
    FastAPI,
    File,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aac_icon_import import __version__
from aac_icon_import.board import Folder, Icon
from aac_icon_import.config import settings, validate_settings_on_startup
from aac_icon_import.models import (
    ErrorDetail,
    FolderResponse,
    HealthResponse,
    IconResponse,
    ImportJobResponse,
    ImportUploadResponse,
    JobStatus,
    QuickAccessEntry,
)
from aac_icon_import.services.folder_store import FolderStore
from aac_icon_import.services.import_jobs import (
    ImportJobManager,
    get_job_manager,
    process_import_job,
)
from aac_icon_import.services.import_pipeline import IconImportPipeline
from aac_icon_import.utils.exceptions import (
    AACError,
    ErrorCode,
    FileTooLargeError,
    ValidationError,
)
from aac_icon_import.utils.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_job_id,
    set_request_id,
)

configure_logging(
    level=settings.log_level_int,
    use_structured_formatter=True,
)
logger = get_logger(__name__)


def _icon_response(icon: Icon) -> IconResponse:
    return IconResponse(
        id=str(icon.id),
        title=icon.title,
        has_custom_audio=icon.has_custom_audio,
        is_quick_access=icon.is_quick_access,
    )


def _folder_response(folder: Folder) -> FolderResponse:
    return FolderResponse(
        id=str(folder.id),
        name=folder.name,
        is_default=folder.is_default,
        icon_count=len(folder.icons),
        icons=[_icon_response(icon) for icon in folder.icons],
    )


def _folder_store(app: FastAPI) -> FolderStore:
    store: FolderStore | None = getattr(app.state, "folder_store", None)
    if store is None:
        store = FolderStore.open(
            settings.folder_store_path, settings.default_folder_names
        )
        app.state.folder_store = store
    return store


def create_app(
    folder_store: FolderStore | None = None,
    job_manager: ImportJobManager | None = None,
    pipeline_factory: Callable[[], IconImportPipeline] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        folder_store: Store to import into. Opened from settings when omitted.
        job_manager: Job tracker. The process-wide manager when omitted.
        pipeline_factory: Builds one pipeline per import job.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        store = _folder_store(app)
        logger.info("Folder store ready", folders=len(store))
        yield

    app = FastAPI(
        title="AAC Icon Import API",
        description=(
            "Bulk import of picture-board folders and speaking icons from "
            "Excel workbooks."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.folder_store = folder_store
    app.state.job_manager = job_manager or get_job_manager()
    app.state.pipeline_factory = pipeline_factory or IconImportPipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    validate_settings_on_startup(settings)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Any:
        """Assign a request ID, expose it for logging, and echo it back."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        set_request_id(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()

    @app.exception_handler(AACError)
    async def aac_exception_handler(request: Request, exc: AACError) -> JSONResponse:
        """Render application errors with their error code."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.error(
            f"AAC Error: {exc.message}",
            error_code=exc.error_code.value,
            http_status=exc.http_status,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=ErrorDetail(
                detail=exc.message,
                error_code=exc.error_code.value,
                details=exc.details if exc.details else None,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorDetail(
                detail=str(exc.detail),
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all handler that hides internals unless debug is on."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.exception(
            f"Unexpected error: {type(exc).__name__}",
            error_type=type(exc).__name__,
        )
        if settings.debug:
            detail = f"Internal server error: {type(exc).__name__}: {exc}"
        else:
            detail = "Internal server error. Please try again later."

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorDetail(
                detail=detail,
                error_code=ErrorCode.INTERNAL_ERROR.value,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": __version__,
        }

    @app.post(
        "/imports",
        response_model=ImportUploadResponse,
        status_code=status.HTTP_202_ACCEPTED,
        tags=["Imports"],
        responses={
            400: {"model": ErrorDetail, "description": "Missing workbook"},
            413: {"model": ErrorDetail, "description": "File too large"},
        },
    )
    async def start_import(
        request: Request,
        background_tasks: BackgroundTasks,
        file: Annotated[UploadFile, File(description="Excel workbook (.xlsx)")],
    ) -> dict[str, Any]:
        """Upload a workbook and import its folders and icons in the background.

        Poll GET /imports/{job_id} for progress and the final summary.
        """
        request_id = getattr(request.state, "request_id", None)

        if file.filename is None or file.filename == "":
            raise ValidationError(
                message="A workbook file must be provided",
                field="file",
            )

        content = await file.read()
        file_size = len(content)
        if file_size > settings.max_file_size_bytes:
            logger.warning(
                "Workbook too large",
                file_size=file_size,
                max_size=settings.max_file_size_bytes,
                request_id=request_id,
            )
            raise FileTooLargeError(
                file_size=file_size,
                max_size=settings.max_file_size_bytes,
                file_path=file.filename,
            )

        job_id = str(uuid.uuid4())
        set_job_id(job_id)

        manager: ImportJobManager = request.app.state.job_manager
        manager.create_job(job_id, file.filename)
        background_tasks.add_task(
            process_import_job,
            job_id,
            content,
            _folder_store(request.app),
            manager,
            request.app.state.pipeline_factory(),
        )

        logger.info(
            "Workbook uploaded",
            job_id=job_id,
            filename=file.filename,
            file_size=file_size,
        )
        return {
            "job_id": job_id,
            "filename": file.filename,
            "file_size": file_size,
            "status": JobStatus.PENDING,
            "message": "Workbook uploaded. Import will begin shortly.",
        }

    @app.get(
        "/imports/{job_id}",
        response_model=ImportJobResponse,
        tags=["Imports"],
        responses={
            404: {"model": ErrorDetail, "description": "Job not found"},
            410: {"model": ErrorDetail, "description": "Job expired"},
        },
    )
    async def get_import(request: Request, job_id: str) -> ImportJobResponse:
        manager: ImportJobManager = request.app.state.job_manager
        return manager.get_job(job_id).to_response()

    @app.post(
        "/imports/{job_id}/cancel",
        response_model=ImportJobResponse,
        tags=["Imports"],
        responses={
            404: {"model": ErrorDetail, "description": "Job not found"},
            410: {"model": ErrorDetail, "description": "Job expired"},
        },
    )
    async def cancel_import(request: Request, job_id: str) -> ImportJobResponse:
        """Ask a running import to stop after the current image."""
        manager: ImportJobManager = request.app.state.job_manager
        return manager.request_cancel(job_id).to_response()

    @app.get("/folders", response_model=list[FolderResponse], tags=["Folders"])
    async def list_folders(request: Request) -> list[FolderResponse]:
        store = _folder_store(request.app)
        return [_folder_response(folder) for folder in store.list_folders()]

    @app.get(
        "/quick-access", response_model=list[QuickAccessEntry], tags=["Folders"]
    )
    async def list_quick_access(request: Request) -> list[QuickAccessEntry]:
        store = _folder_store(request.app)
        return [
            QuickAccessEntry(
                folder_id=str(folder.id),
                folder_name=folder.name,
                icon=_icon_response(icon),
            )
            for folder, icon in store.quick_access()
        ]

    logger.info("FastAPI application created successfully")
    return app


app = create_app()

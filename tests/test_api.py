"""Tests for the FastAPI application."""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import httpx
import pytest
from fastapi import status

from aac_icon_import.api import create_app
from aac_icon_import.config import settings
from aac_icon_import.services.folder_store import FolderStore
from aac_icon_import.services.image_fetcher import ImageFetcher
from aac_icon_import.services.import_jobs import ImportJobManager, ImportJobManagerConfig
from aac_icon_import.services.import_pipeline import IconImportPipeline
from tests.fixtures import ICONS_HEADER, ImageHost, build_workbook

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@asynccontextmanager
async def create_test_client(
    store: FolderStore,
    manager: ImportJobManager,
    pipeline_factory: Callable[[], IconImportPipeline],
) -> AsyncIterator[httpx.AsyncClient]:
    """Create an async test client with proper lifespan handling."""
    app = create_app(
        folder_store=store, job_manager=manager, pipeline_factory=pipeline_factory
    )
    async with (
        app.router.lifespan_context(app),
        httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://test",
        ) as client,
    ):
        yield client


@pytest.fixture
def job_manager() -> ImportJobManager:
    return ImportJobManager(ImportJobManagerConfig(enable_auto_cleanup=False))


@pytest.fixture
async def client(
    store: FolderStore,
    job_manager: ImportJobManager,
    make_fetcher: Callable[..., ImageFetcher],
) -> AsyncIterator[httpx.AsyncClient]:
    async with make_fetcher() as fetcher:
        async with create_test_client(
            store, job_manager, lambda: IconImportPipeline(fetcher=fetcher)
        ) as ac:
            yield ac


async def upload(
    client: httpx.AsyncClient, data: bytes, name: str = "icons.xlsx"
) -> httpx.Response:
    return await client.post("/imports", files={"file": (name, data, XLSX_TYPE)})


class TestHealth:
    async def test_health(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == "0.1.0"

    async def test_request_id_is_echoed(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"


class TestImports:
    async def test_upload_runs_import(
        self, client: httpx.AsyncClient, image_host: ImageHost
    ) -> None:
        image_host.image("http://x/juice.png")
        image_host.image("http://x/juice2.png")
        data = build_workbook(
            {
                "Icons": [
                    ICONS_HEADER,
                    ["Juice", "Snacks", "http://x/juice.png"],
                    ["", "Snacks", "http://x/bad.png"],
                    ["Juice", "Snacks", "http://x/juice2.png"],
                ]
            }
        )

        response = await upload(client, data)

        assert response.status_code == status.HTTP_202_ACCEPTED
        body = response.json()
        assert body["filename"] == "icons.xlsx"
        assert body["file_size"] == len(data)
        assert body["status"] == "pending"

        job = (await client.get(f"/imports/{body['job_id']}")).json()
        assert job["status"] == "completed"
        assert job["phase"] == "done"
        assert job["fraction_complete"] == 1.0
        assert job["summary"]["created_icon_count"] == 2
        assert job["summary_text"] == "Import complete! Created 2 icons in 1 folders."

        folders = (await client.get("/folders")).json()
        assert [(f["name"], f["icon_count"]) for f in folders] == [("Snacks", 2)]

    async def test_corrupt_upload_fails_job(self, client: httpx.AsyncClient) -> None:
        response = await upload(client, b"definitely not xlsx", name="broken.xlsx")
        assert response.status_code == status.HTTP_202_ACCEPTED

        job = (await client.get(f"/imports/{response.json()['job_id']}")).json()

        assert job["status"] == "failed"
        assert job["error_code"] == "E1003"
        assert job["summary"] is None

    async def test_upload_too_large(
        self, client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "max_file_size_mb", 1)

        response = await upload(client, b"x" * (1024 * 1024 + 1))

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json()["error_code"] == "E1002"

    async def test_unknown_job(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/imports/nonexistent")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["error_code"] == "E3001"
        assert "request_id" in body

    async def test_cancel_pending_job(
        self, client: httpx.AsyncClient, job_manager: ImportJobManager
    ) -> None:
        job_manager.create_job("job-1", "icons.xlsx")

        response = await client.post("/imports/job-1/cancel")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status_text"] == "Cancelling..."
        assert job_manager.get_job("job-1").cancel_token.cancelled

    async def test_cancel_unknown_job(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/imports/nonexistent/cancel")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestFolders:
    async def test_list_folders_hides_blobs(
        self, client: httpx.AsyncClient, store: FolderStore
    ) -> None:
        folder = store.add_folder("General", is_default=True)
        store.add_icon(folder.id, "Yes", b"\xff\xd8", audio_data=b"RIFF")

        folders = (await client.get("/folders")).json()

        assert folders[0]["is_default"] is True
        icon = folders[0]["icons"][0]
        assert icon["title"] == "Yes"
        assert icon["has_custom_audio"] is True
        assert "image_data" not in icon

    async def test_quick_access(self, client: httpx.AsyncClient, store: FolderStore) -> None:
        folder = store.add_folder("Snacks")
        icon = store.add_icon(folder.id, "Juice", b"x")
        store.add_icon(folder.id, "Milk", b"x")
        store.set_quick_access(icon.id, True)

        entries = (await client.get("/quick-access")).json()

        assert len(entries) == 1
        assert entries[0]["folder_name"] == "Snacks"
        assert entries[0]["icon"]["id"] == str(icon.id)

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from aac_icon_import.services.folder_store import FolderStore
from aac_icon_import.services.image_fetcher import (
    FetchOptions,
    IconImageProcessor,
    ImageFetcher,
)
from tests.fixtures import ImageHost


@pytest.fixture
def image_host() -> ImageHost:
    return ImageHost()


@pytest.fixture
def fetch_options() -> FetchOptions:
    return FetchOptions(
        timeout_seconds=5.0,
        max_retries=0,
        retry_base_delay=0.0,
        max_bytes=1024 * 1024,
        max_concurrency=4,
    )


@pytest.fixture
def make_fetcher(
    image_host: ImageHost, fetch_options: FetchOptions
) -> Callable[..., ImageFetcher]:
    """Build fetchers whose HTTP traffic goes to ``image_host``."""

    def factory(options: FetchOptions | None = None) -> ImageFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(image_host.handler))
        return ImageFetcher(
            client=client,
            options=options or fetch_options,
            processor=IconImageProcessor(max_dimension=512, jpeg_quality=75),
        )

    return factory


@pytest.fixture
def store() -> FolderStore:
    return FolderStore()

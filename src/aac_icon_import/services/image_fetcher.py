"""Download icon images and normalise them for storage.

Each image link is fetched independently with a bounded timeout, retried
on transient network errors with exponential backoff, and decoded with
Pillow. Decoded images are downscaled so their longest side fits the
configured icon size and re-encoded as JPEG.

Concurrency is bounded by a semaphore shared by all fetches issued through
one ``ImageFetcher``.
"""

from __future__ import annotations

import asyncio
import io
import random
import time
from dataclasses import dataclass
from types import TracebackType

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from aac_icon_import.config import Settings, settings
from aac_icon_import.utils.exceptions import FetchError, ImageDecodeError
from aac_icon_import.utils.logging import get_logger

logger = get_logger(__name__)

# Errors worth another attempt; HTTP status errors are not retried.
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
)

MAX_RETRY_DELAY = 10.0


@dataclass(frozen=True)
class FetchOptions:
    """Limits applied to image downloads."""

    timeout_seconds: float = 15.0
    max_retries: int = 2
    retry_base_delay: float = 0.5
    max_bytes: int = 10 * 1024 * 1024
    max_concurrency: int = 4

    @classmethod
    def from_settings(cls, s: Settings) -> FetchOptions:
        return cls(
            timeout_seconds=s.fetch_timeout_seconds,
            max_retries=s.fetch_max_retries,
            retry_base_delay=s.fetch_retry_base_delay,
            max_bytes=s.max_image_size_bytes,
            max_concurrency=s.fetch_max_concurrency,
        )


@dataclass(frozen=True)
class FetchedImage:
    """An image ready to be stored on an icon."""

    url: str
    data: bytes
    width: int
    height: int
    downloaded_bytes: int


class IconImageProcessor:
    """Decode, orient, downscale and JPEG-encode icon images."""

    def __init__(self, max_dimension: int = 512, jpeg_quality: int = 75) -> None:
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality

    def process(self, raw: bytes, url: str) -> tuple[bytes, int, int]:
        """Return JPEG bytes and final size.

        Raises:
            ImageDecodeError: If ``raw`` is not an image Pillow can read.
        """
        try:
            with Image.open(io.BytesIO(raw)) as opened:
                opened.load()
                image = ImageOps.exif_transpose(opened)
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            raise ImageDecodeError(url, details={"reason": str(e)}) from e

        image.thumbnail((self.max_dimension, self.max_dimension))

        if image.mode in ("RGBA", "LA", "P"):
            image = image.convert("RGBA")
            background = Image.new("RGB", image.size, "white")
            background.paste(image, mask=image.getchannel("A"))
            image = background
        elif image.mode != "RGB":
            image = image.convert("RGB")

        out = io.BytesIO()
        image.save(out, format="JPEG", quality=self.jpeg_quality)
        return out.getvalue(), image.width, image.height


class ImageFetcher:
    """Fetch icon images over HTTP with bounded concurrency.

    Usage:
        async with ImageFetcher() as fetcher:
            image = await fetcher.fetch("https://example.com/juice.png")
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        options: FetchOptions | None = None,
        processor: IconImageProcessor | None = None,
    ) -> None:
        self.options = options or FetchOptions.from_settings(settings)
        self.processor = processor or IconImageProcessor(
            max_dimension=settings.icon_max_dimension,
            jpeg_quality=settings.icon_jpeg_quality,
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self._semaphore = asyncio.Semaphore(self.options.max_concurrency)

    async def __aenter__(self) -> ImageFetcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, url: str) -> FetchedImage:
        """Download and normalise one image.

        Raises:
            FetchError: On an invalid link, HTTP error status, network failure
                after retries, oversized body, or undecodable content.
        """
        start = time.monotonic()
        try:
            self._validate_url(url)
            async with self._semaphore:
                raw = await self._download_with_retry(url)
                data, width, height = await asyncio.to_thread(
                    self.processor.process, raw, url
                )
        except FetchError as e:
            logger.log_fetch(
                url,
                time.monotonic() - start,
                success=False,
                error_message=e.message,
            )
            raise
        logger.log_fetch(url, time.monotonic() - start, size_bytes=len(raw))
        return FetchedImage(
            url=url,
            data=data,
            width=width,
            height=height,
            downloaded_bytes=len(raw),
        )

    @staticmethod
    def _validate_url(url: str) -> None:
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise FetchError(f"Invalid URL: {url}", url=url) from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise FetchError(f"Invalid URL: {url}", url=url)

    async def _download_with_retry(self, url: str) -> bytes:
        attempts = self.options.max_retries + 1
        for attempt in range(attempts):
            try:
                return await self._download(url)
            except RETRYABLE_EXCEPTIONS as e:
                if attempt + 1 >= attempts:
                    raise FetchError(
                        f"Failed to download image after {attempts} attempts: {e}",
                        url=url,
                        details={"reason": type(e).__name__},
                    ) from e
                delay = min(self.options.retry_base_delay * (2**attempt), MAX_RETRY_DELAY)
                delay += random.uniform(0, delay * 0.1)
                logger.warning(
                    f"Retry {attempt + 1}/{self.options.max_retries} for image fetch",
                    url=url,
                    error=str(e),
                    delay_seconds=f"{delay:.2f}",
                )
                await asyncio.sleep(delay)
            except httpx.HTTPError as e:
                raise FetchError(
                    f"Failed to download image: {e}",
                    url=url,
                    details={"reason": type(e).__name__},
                ) from e
        raise AssertionError("unreachable")

    async def _download(self, url: str) -> bytes:
        async with self._client.stream(
            "GET", url, timeout=self.options.timeout_seconds
        ) as response:
            if response.status_code >= 400:
                raise FetchError(
                    f"Image host returned HTTP {response.status_code}",
                    url=url,
                    status_code=response.status_code,
                )
            chunks: list[bytes] = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > self.options.max_bytes:
                    raise FetchError(
                        f"Image exceeds {self.options.max_bytes} bytes",
                        url=url,
                        details={"max_bytes": self.options.max_bytes},
                    )
                chunks.append(chunk)
        return b"".join(chunks)

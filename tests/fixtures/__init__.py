"""Test helpers for building workbooks and serving images.

Example usage:
    from tests.fixtures import ImageHost, build_workbook, png_bytes

    data = build_workbook({"Icons": [["icon", "folder", "s3link"]]})
"""

import io
from collections.abc import Callable, Iterable
from typing import Any

import httpx
from openpyxl import Workbook
from PIL import Image

ICONS_HEADER = ["icon", "folder", "s3link"]


def build_workbook(sheets: dict[str, Iterable[Iterable[Any]]]) -> bytes:
    """Build an .xlsx package in memory.

    Args:
        sheets: Sheet title to rows, in workbook order. ``None`` cells are
            left empty, so gaps in a row stay gaps in the package.

    Returns:
        The workbook as bytes.
    """
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for r, row in enumerate(rows, start=1):
            for c, value in enumerate(row, start=1):
                if value is not None:
                    ws.cell(row=r, column=c, value=value)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def png_bytes(size: tuple[int, int] = (64, 48), color: str = "red", mode: str = "RGB") -> bytes:
    """Encode a solid-colour PNG."""
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


class ImageHost:
    """Request handler for ``httpx.MockTransport``.

    Registered URLs answer with their route; anything else is a 404.
    Every requested URL is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[str] = []

    def image(self, url: str, content: bytes | None = None) -> None:
        body = content if content is not None else png_bytes()
        self.routes[url] = lambda request: httpx.Response(
            200, content=body, headers={"Content-Type": "image/png"}
        )

    def status(self, url: str, code: int) -> None:
        self.routes[url] = lambda request: httpx.Response(code)

    def error(self, url: str, exc: Exception) -> None:
        def raise_(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[url] = raise_

    def sequence(self, url: str, *steps: Exception | bytes) -> None:
        """Answer successive requests from ``steps``; the last one repeats."""
        remaining = list(steps)

        def next_step(request: httpx.Request) -> httpx.Response:
            step = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            if isinstance(step, Exception):
                raise step
            return httpx.Response(200, content=step)

        self.routes[url] = next_step

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404)
        return route(request)

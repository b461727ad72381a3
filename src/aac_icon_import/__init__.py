"""AAC Icon Import - bulk Excel import of picture-board folders and icons."""

__version__ = "0.1.0"

from aac_icon_import.api import app, create_app  # noqa: E402

__all__ = ["app", "create_app"]


def main() -> None:
    """Run the FastAPI server using uvicorn."""
    import uvicorn

    from aac_icon_import.config import settings

    uvicorn.run(
        "aac_icon_import.api:app",
        host=settings.server_host,
        port=settings.server_port,
    )

"""TechDoc API — FastAPI adapter over the document engine."""

from techdoc.api.server import create_app  # noqa: F401

__all__ = ["create_app"]

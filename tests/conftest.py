"""
TechDoc Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import pytest

from techdoc.documents.engine import DocumentEngine
from techdoc.documents.index import IndexStore


@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset the cached config and stop any log queue a test started."""
    import techdoc.engine.config as cfg_mod
    from techdoc.engine.logging import shutdown_logging

    root_logger = logging.getLogger()
    level = root_logger.level
    cfg_mod._config = None
    yield
    shutdown_logging()
    cfg_mod._config = None
    for handler in [h for h in root_logger.handlers if getattr(h, "_techdoc", False)]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)


@pytest.fixture
def root(tmp_path) -> Path:
    """Document root that does not exist yet."""
    return tmp_path / "docs"


@pytest.fixture
def make_tree():
    """Write {relative_path: content} files under a directory."""

    def _make(base: Path, files: Dict[str, str]) -> None:
        for rel, content in files.items():
            path = base / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

    return _make


@pytest.fixture
def store(root) -> IndexStore:
    """Initialized store over an empty root."""
    s = IndexStore(root)
    s.init()
    return s


@pytest.fixture
def engine(store) -> DocumentEngine:
    return DocumentEngine(store)


@pytest.fixture
def client(engine):
    """FastAPI TestClient bound to the engine fixture."""
    from fastapi.testclient import TestClient

    from techdoc.api.server import create_app

    with TestClient(create_app(engine)) as c:
        yield c

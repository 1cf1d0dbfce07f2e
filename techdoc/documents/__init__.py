"""TechDoc Documents — Index store, path translation, trash, document engine."""

from techdoc.documents.engine import DocumentEngine, IndexIssue  # noqa: F401
from techdoc.documents.index import IndexStore  # noqa: F401
from techdoc.documents.models import DocumentRecord  # noqa: F401
from techdoc.documents.paths import PathTranslator, check_folder, check_name  # noqa: F401
from techdoc.documents.trash import TrashManager  # noqa: F401

__all__ = [
    "DocumentEngine",
    "DocumentRecord",
    "IndexIssue",
    "IndexStore",
    "PathTranslator",
    "TrashManager",
    "check_folder",
    "check_name",
]

"""
TechDoc — File-backed document store.

Documents are named, typed, foldered text files under one root directory.
A single hidden JSON index maps document identifiers to their metadata and
current physical location; deleted documents move into a hidden trash folder.

Entry points:
    techdoc.documents.DocumentEngine  — document operations
    techdoc.documents.IndexStore      — index lifecycle (one per process)
    techdoc.api.create_app            — FastAPI adapter
    techdoc.cli.main                  — ``techdoc`` command
"""

__version__ = "1.0.0"
__all__ = ["engine", "documents", "api", "cli"]

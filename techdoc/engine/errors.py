"""
TechDoc Error Hierarchy — Structured exceptions for the document store.

Two kinds of failure reach callers:
    - User errors (TechDocUserError and subclasses) — the request itself is
      wrong. The HTTP adapter maps DocumentNotFoundError to 404 and every
      other user error to 400.
    - Everything else — internal faults (disk I/O, JSON, permissions). They
      are never reported as user errors.

Hierarchy:
    TechDocError
    ├── TechDocUserError             — Caller error (InvalidRequest)
    │   ├── DocumentNotFoundError    — Identifier has no record (NotFound)
    │   ├── ExistingDocumentError    — Target file already occupied
    │   ├── InvalidNameError         — Name/folder has forbidden characters
    │   └── TrashPathFormatError     — Stored trash path is malformed
    ├── IndexNotInitializedError     — Index file missing after init
    └── TechDocConfigError           — Invalid techdoc.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class TechDocError(Exception):
    """
    Base error for all TechDoc failures.
    All context is kept serializable so errors can be logged as JSON.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.error_type: str = self.__class__.__name__
        self.operation: Optional[str] = context.get("operation")
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k != "operation"
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.operation:
            parts.append(f"operation={self.operation}")
        return " | ".join(parts)


class TechDocUserError(TechDocError):
    """
    The request cannot be served as given (bad input or conflicting state).
    Retrying the same request will fail the same way.
    """
    pass


class DocumentNotFoundError(TechDocUserError):
    """No record exists for the given document identifier."""

    def __init__(self, document_id: Any, **context: Any):
        self.document_id: str = str(document_id)
        super().__init__(f'Document "{document_id}" not found!', **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["document_id"] = self.document_id
        return d


class ExistingDocumentError(TechDocUserError):
    """A non-empty document already occupies the target path."""

    def __init__(self, path: str, **context: Any):
        self.path = path
        super().__init__(f'A document named "{path}" already exists!', **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["path"] = self.path
        return d


class InvalidNameError(TechDocUserError):
    """A document or folder name is empty or contains forbidden characters."""

    def __init__(self, name: Optional[str], **context: Any):
        self.name = name
        super().__init__(f'"{name}" is not a valid file name!', **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["name"] = self.name
        return d


class TrashPathFormatError(TechDocUserError):
    """A deleted record's stored path does not carry the @<timestamp> suffix."""

    def __init__(self, path: str, **context: Any):
        self.path = path
        super().__init__(
            f"Document internal path is not in the correct format: {path}", **context
        )


class IndexNotInitializedError(TechDocError):
    """The index file is missing although the store was initialized."""

    def __init__(self, index_path: str, **context: Any):
        self.index_path = index_path
        super().__init__(f"Index file not found: {index_path}", **context)


class TechDocConfigError(TechDocError):
    """Configuration error — invalid techdoc.yaml."""
    pass

"""
TechDoc Document Engine — every document operation over the index + file tree.

Each mutating operation runs its whole sequence inside one index transaction:

    1. Load the index (under the store lock)
    2. Validate arguments and look up the record
    3. Change the file tree (write, move to/from trash, ...)
    4. Update the record in place
    5. Save the whole index

Validation and lookup errors are raised before step 3, so a rejected request
leaves both the tree and the index untouched.

Behaviour callers should know about:
    - rename() changes the logical name only; the file keeps its name until
      the document is moved.
    - save_content() does not refresh last_saved_on or size.
    - Content of soft-deleted documents stays readable, writable and copyable.
"""

from __future__ import annotations

import logging
import os
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from techdoc.documents.index import Index, IndexStore
from techdoc.documents.models import DocumentRecord, utcnow
from techdoc.documents.paths import (
    PathTranslator,
    check_folder,
    check_name,
    normalize_type,
)
from techdoc.documents.trash import TrashManager
from techdoc.engine.errors import (
    DocumentNotFoundError,
    ExistingDocumentError,
    InvalidNameError,
)
from techdoc.engine.logging import log, log_document_operation

logger = logging.getLogger("techdoc.documents.engine")

WILDCARDS = ("*", "?")


def _name_matcher(expression: str) -> Callable[[str], bool]:
    """
    Case-insensitive filter for search().

    Without wildcards: substring containment. With ``*``/``?``: glob over the
    whole value (``*`` any run, ``?`` one character).
    """
    if not any(w in expression for w in WILDCARDS):
        needle = expression.casefold()
        return lambda value: needle in value.casefold()

    pattern = "".join(
        ".*" if c == "*" else "." if c == "?" else re.escape(c)
        for c in expression
    )
    regex = re.compile(pattern, re.IGNORECASE | re.DOTALL)
    return lambda value: regex.fullmatch(value) is not None


def _read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


@dataclass
class IndexIssue:
    """One inconsistency between the index and the file tree."""
    kind: str
    path: str
    document_id: Optional[UUID] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "path": self.path,
            "document_id": str(self.document_id) if self.document_id else None,
            "details": self.details,
        }


class DocumentEngine:
    """
    Document operations for one IndexStore.

    The store must be initialized (``store.init()``) before the first call.
    """

    def __init__(self, store: IndexStore):
        self._store = store
        self._paths = PathTranslator(
            store.root, reserved=(store.index_path, store.temp_path, store.trash_root)
        )
        self._trash = TrashManager(store.root, store.trash_root)

    @property
    def store(self) -> IndexStore:
        return self._store

    @property
    def paths(self) -> PathTranslator:
        return self._paths

    @property
    def trash(self) -> TrashManager:
        return self._trash

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    def get(self, doc_id: UUID) -> DocumentRecord:
        """Metadata from the index; the file itself is not checked."""
        record = self._store.read().get(doc_id)
        if record is None:
            raise DocumentNotFoundError(doc_id, operation="get")
        return record

    def search(
        self,
        folder: Optional[str] = None,
        pattern: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[DocumentRecord]:
        """
        Filter the index by deleted state, then folder, then name.

        include_deleted=False returns live documents only; True returns all.
        Empty folder/pattern does not filter. Results keep index order.
        """
        records = [
            r for r in self._store.read().values()
            if include_deleted or not r.is_deleted
        ]
        if folder:
            matches_folder = _name_matcher(folder)
            records = [r for r in records if matches_folder(r.folder)]
        if pattern:
            matches_name = _name_matcher(pattern)
            records = [r for r in records if matches_name(r.name)]
        return records

    def load_content(self, doc_id: UUID) -> str:
        return _read_text(Path(self.get(doc_id).full_path))

    def save_content(self, doc_id: UUID, content: Optional[str]) -> None:
        # last_saved_on / size are left as they are
        _write_text(Path(self.get(doc_id).full_path), content or "")

    # -------------------------------------------------------------------
    # Create / Copy
    # -------------------------------------------------------------------

    def create(
        self,
        folder: Optional[str],
        name: str,
        type: Optional[str],
        content: Optional[str] = None,
        overwrite: bool = False,
    ) -> DocumentRecord:
        """
        Write a new document file and index it.

        An existing non-empty file at the target is only replaced when
        ``overwrite`` is set; an existing empty file is always replaced.
        """
        started = time.monotonic()
        folder = check_folder(folder)
        check_name(name)
        doc_type = normalize_type(type)
        if doc_type:
            check_name(doc_type)
        path = self._paths.physical_path(folder, name, doc_type)
        if self._paths.is_reserved(path):
            raise InvalidNameError(self._display(path), operation="create")
        content = content or ""

        with self._store.transaction() as index:
            if path.is_dir() or (path.is_file() and path.stat().st_size > 0 and not overwrite):
                raise ExistingDocumentError(self._display(path), operation="create")

            path.parent.mkdir(parents=True, exist_ok=True)
            _write_text(path, content)

            now = utcnow()
            record = DocumentRecord(
                id=self._new_id(index),
                name=name,
                folder=folder,
                type=doc_type,
                created_on=now,
                last_saved_on=now,
                deleted_on=None,
                size=len(content),
                full_path=str(path),
            )
            index[record.id] = record

        self._emit("create", record, started)
        return record

    def create_copy(self, doc_id: UUID, copy_name: Optional[str] = None) -> DocumentRecord:
        """Create a new document in the source's folder with the source's content."""
        source = self.get(doc_id)
        new_name = copy_name if copy_name is not None else f"{source.name} (copy)"
        check_name(new_name)
        content = self.load_content(doc_id)
        return self.create(source.folder, new_name, source.type, content)

    # -------------------------------------------------------------------
    # Rename / Move
    # -------------------------------------------------------------------

    def rename(self, doc_id: UUID, new_name: str) -> None:
        check_name(new_name)
        with self._store.transaction() as index:
            record = self._require(index, doc_id, "rename")
            record.name = new_name
        self._emit("rename", record)

    def move(self, doc_id: UUID, new_folder: Optional[str]) -> None:
        """
        Move the document's file into *new_folder* (never overwriting).

        A deleted document moves inside the trash and keeps its deletion stamp.
        """
        started = time.monotonic()
        folder = check_folder(new_folder)
        with self._store.transaction() as index:
            record = self._require(index, doc_id, "move")
            live_target = self._paths.physical_path(folder, record.name, record.type)
            if self._paths.is_reserved(live_target):
                raise InvalidNameError(new_folder, operation="move")

            source = Path(record.full_path)
            if record.is_deleted:
                target = self._trash.relocate(source, live_target)
            else:
                target = live_target

            if target != source:
                if target.exists():
                    raise ExistingDocumentError(self._display(live_target), operation="move")
                target.parent.mkdir(parents=True, exist_ok=True)
                source.rename(target)

            record.folder = folder
            record.full_path = str(target)

        self._emit("move", record, started)

    # -------------------------------------------------------------------
    # Delete / Undelete
    # -------------------------------------------------------------------

    def delete(self, doc_id: UUID) -> None:
        """Soft delete: move the file into the trash. No-op if already deleted."""
        started = time.monotonic()
        with self._store.transaction() as index:
            record = self._require(index, doc_id, "delete")
            if record.is_deleted:
                return

            source = Path(record.full_path)
            now = utcnow()
            target = self._trash.to_trash_path(source, now)
            while target.exists():
                now += timedelta(microseconds=1)
                target = self._trash.to_trash_path(source, now)

            target.parent.mkdir(parents=True, exist_ok=True)
            source.rename(target)

            record.deleted_on = now
            record.full_path = str(target)

        self._emit("delete", record, started)

    def undelete(self, doc_id: UUID) -> None:
        """Restore a soft-deleted document to its original path. No-op if live."""
        started = time.monotonic()
        with self._store.transaction() as index:
            record = self._require(index, doc_id, "undelete")
            if not record.is_deleted:
                return

            source = Path(record.full_path)
            target = self._trash.from_trash_path(source)
            if target.exists():
                raise ExistingDocumentError(self._display(target), operation="undelete")

            target.parent.mkdir(parents=True, exist_ok=True)
            source.rename(target)

            record.deleted_on = None
            record.full_path = str(target)

        self._emit("undelete", record, started)

    # -------------------------------------------------------------------
    # Consistency
    # -------------------------------------------------------------------

    def verify(self) -> List[IndexIssue]:
        """
        Compare the index against the file tree. Read-only.

        Issue kinds:
            missing_file          — record points at a file that does not exist
            live_in_trash         — live record points inside the trash
            deleted_outside_trash — deleted record points outside the trash
            duplicate_path        — record shares its file with an earlier record
            untracked_file        — live file on disk with no record
        """
        index = self._store.read()
        issues: List[IndexIssue] = []
        tracked: Dict[Path, UUID] = {}

        for record in index.values():
            path = Path(record.full_path)
            if path in tracked:
                issues.append(IndexIssue(
                    "duplicate_path", record.full_path, record.id,
                    details={"shared_with": str(tracked[path])},
                ))
            else:
                tracked[path] = record.id
            in_trash = self._trash.is_trash_path(path)
            if not path.is_file():
                issues.append(IndexIssue("missing_file", record.full_path, record.id))
            elif record.is_deleted and not in_trash:
                issues.append(IndexIssue("deleted_outside_trash", record.full_path, record.id))
            elif not record.is_deleted and in_trash:
                issues.append(IndexIssue("live_in_trash", record.full_path, record.id))

        for path in self._store.iter_files():
            if path not in tracked:
                issues.append(IndexIssue("untracked_file", str(path)))

        if issues:
            logger.warning(f"Index verification found {len(issues)} issue(s)")
        return issues

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    @staticmethod
    def _require(index: Index, doc_id: UUID, operation: str) -> DocumentRecord:
        record = index.get(doc_id)
        if record is None:
            raise DocumentNotFoundError(doc_id, operation=operation)
        return record

    @staticmethod
    def _new_id(index: Index) -> UUID:
        doc_id = uuid.uuid4()
        while doc_id in index:
            doc_id = uuid.uuid4()
        return doc_id

    def _display(self, path: Path) -> str:
        """Root-relative path for messages; never leak the absolute location."""
        try:
            return Path(path).relative_to(self._paths.root).as_posix()
        except ValueError:
            return os.path.basename(str(path))

    def _emit(self, operation: str, record: DocumentRecord, started: Optional[float] = None) -> None:
        duration_ms = round((time.monotonic() - started) * 1000, 2) if started else None
        logger.info(f"{operation}: {record.id} -> {record.full_path}")
        log(log_document_operation(
            operation,
            record.id,
            name=record.name,
            folder=record.folder,
            path=record.full_path,
            duration_ms=duration_ms,
        ))

    def __repr__(self) -> str:
        return f"<DocumentEngine root='{self._paths.root}'>"

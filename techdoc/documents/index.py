"""
TechDoc Index Store — owner of the JSON index file.

One IndexStore is constructed per process and injected into the
DocumentEngine. It guarantees that, once ``init()`` has returned, the index
file exists and parses to a (possibly empty) identifier → record mapping.

Every load → mutate → save cycle runs under the store's lock through
``transaction()``; ``read()`` takes its snapshot under the same lock. The lock
is process-local: two processes sharing one root are not coordinated.

On-disk layout under the root:
    .index.json            — the index (hidden)
    .deleted/              — trash subtree (hidden)
    <folder>/<name>.<type> — live documents
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Union
from uuid import UUID

from techdoc.documents.models import DocumentRecord
from techdoc.documents.paths import PathTranslator
from techdoc.engine.errors import IndexNotInitializedError
from techdoc.engine.logging import log, log_index_event

logger = logging.getLogger("techdoc.documents.index")

Index = Dict[UUID, DocumentRecord]

DEFAULT_INDEX_FILE = ".index.json"
DEFAULT_TRASH_FOLDER = ".deleted"

_FILE_ATTRIBUTE_HIDDEN = 0x02


def _mark_hidden(path: Path) -> None:
    """Dot-prefixed names are hidden on POSIX already; Windows needs the attribute."""
    if os.name != "nt" or not path.exists():
        return
    import ctypes

    kernel32 = ctypes.windll.kernel32
    attrs = kernel32.GetFileAttributesW(str(path))
    if attrs != -1:
        kernel32.SetFileAttributesW(str(path), attrs | _FILE_ATTRIBUTE_HIDDEN)


def _from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class IndexStore:
    """Load/save of the whole index plus the one-time bootstrap."""

    def __init__(
        self,
        root: Union[str, Path],
        index_file_name: str = DEFAULT_INDEX_FILE,
        trash_folder_name: str = DEFAULT_TRASH_FOLDER,
    ):
        self._root = Path(root).expanduser().resolve()
        self._index_path = self._root / index_file_name
        self._trash_root = self._root / trash_folder_name
        self._tmp_path = self._index_path.with_name(index_file_name + ".tmp")
        self._lock = threading.RLock()
        self._initialized = False

    @property
    def root(self) -> Path:
        return self._root

    @property
    def index_path(self) -> Path:
        return self._index_path

    @property
    def temp_path(self) -> Path:
        return self._tmp_path

    @property
    def trash_root(self) -> Path:
        return self._trash_root

    @property
    def initialized(self) -> bool:
        return self._initialized

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    def init(self) -> None:
        """
        Make the store ready to serve. Runs its body at most once.

        1. Create the root directory
        2. Rebuild the index from the file tree if the index file is missing
        3. Create the trash directory
        4. Mark index and trash hidden
        """
        with self._lock:
            if self._initialized:
                return
            self._root.mkdir(parents=True, exist_ok=True)
            if not self._index_path.exists():
                logger.info(f"No index at {self._index_path}, rebuilding from {self._root}")
                self._rebuild_locked()
            self._trash_root.mkdir(exist_ok=True)
            _mark_hidden(self._trash_root)
            _mark_hidden(self._index_path)
            self._initialized = True
            logger.info(f"Index store ready: {self._index_path}")

    def rebuild(self) -> int:
        """Replace the index with a fresh scan of the tree. Returns the record count."""
        with self._lock:
            self._root.mkdir(parents=True, exist_ok=True)
            return self._rebuild_locked()

    def _rebuild_locked(self) -> int:
        index = self.scan()
        self.save(index)
        logger.info(f"Rebuilt index with {len(index)} record(s)")
        log(log_index_event("index_rebuilt", str(self._index_path), record_count=len(index)))
        return len(index)

    def scan(self) -> Index:
        """
        One live record per file under the root, each with a new identifier.

        Skips the trash subtree, the index file and its temp sibling. Other
        dot-prefixed files and folders are documents like any other.
        Previously assigned identifiers are not recovered.
        """
        translator = PathTranslator(self._root)
        index: Index = {}
        for path in self.iter_files():
            record = self._record_from_file(path, translator)
            index[record.id] = record
        return index

    def iter_files(self) -> Iterator[Path]:
        """Live document files on disk, in a stable order."""
        skipped = {self._index_path, self._tmp_path}
        for dirpath, dirnames, filenames in os.walk(self._root):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if current / d != self._trash_root)
            for filename in sorted(filenames):
                path = current / filename
                if path not in skipped:
                    yield path

    @staticmethod
    def _record_from_file(path: Path, translator: PathTranslator) -> DocumentRecord:
        stat = path.stat()
        logical = translator.logical_from_physical(path)
        created = getattr(stat, "st_birthtime", stat.st_ctime)
        return DocumentRecord(
            id=uuid.uuid4(),
            name=logical.name,
            folder=logical.folder,
            type=logical.type,
            created_on=_from_timestamp(created),
            last_saved_on=_from_timestamp(stat.st_mtime),
            deleted_on=None,
            size=stat.st_size,
            full_path=str(path),
        )

    # -------------------------------------------------------------------
    # Load / Save
    # -------------------------------------------------------------------

    def load(self) -> Index:
        """Read the whole index. A missing file is fatal (IndexNotInitializedError)."""
        try:
            with open(self._index_path, "r", encoding="utf-8") as f:
                raw: Dict[str, Any] = json.load(f)
        except FileNotFoundError as e:
            raise IndexNotInitializedError(str(self._index_path)) from e

        index: Index = {}
        for value in raw.values():
            record = DocumentRecord.model_validate(value)
            index[record.id] = record
        return index

    def save(self, index: Index) -> None:
        """
        Overwrite the whole index file.

        The JSON goes to a sibling temp file first and then replaces the
        index, so a reader never sees a partially written file.
        """
        payload = {str(doc_id): record.to_index_entry() for doc_id, record in index.items()}
        with open(self._tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(self._tmp_path, self._index_path)
        _mark_hidden(self._index_path)

    @contextmanager
    def transaction(self) -> Iterator[Index]:
        """
        Serialized load → mutate → save.

        The index is saved only when the block finishes without raising.
        """
        with self._lock:
            index = self.load()
            yield index
            self.save(index)

    def read(self) -> Index:
        """Consistent snapshot of the index."""
        with self._lock:
            return self.load()

    # -------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------

    def health(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {
            "initialized": self._initialized,
            "root": str(self._root),
            "root_exists": self._root.is_dir(),
            "index_exists": self._index_path.is_file(),
            "trash_exists": self._trash_root.is_dir(),
        }
        if status["index_exists"]:
            index = self.read()
            deleted = sum(1 for r in index.values() if r.is_deleted)
            status["documents"] = len(index) - deleted
            status["deleted"] = deleted
        return status

    def __repr__(self) -> str:
        return f"<IndexStore root='{self._root}' index='{self._index_path.name}'>"

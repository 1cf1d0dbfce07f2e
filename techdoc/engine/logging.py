"""
TechDoc Logging — Standard diagnostics plus a structured JSONL operation log.

Implements:
- configure_logging(): root handler/level for CLI and server runs
- FileLogger: per-channel JSONL files with daily rotation
- AsyncLogQueue: in-memory queue flushed by a background thread
- Log entry builders for document, index, API and system events

Files: {log_dir}/{channel}/{YYYY-MM-DD}.jsonl
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, List, Optional

logger = logging.getLogger("techdoc.engine.logging")

CHANNELS = ("documents", "index", "api", "system")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    if not any(getattr(h, "_techdoc", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._techdoc = True
        root.addHandler(handler)
    root.setLevel(level.upper())


class LogEntry:
    """A structured log entry destined for one channel file."""

    __slots__ = ("channel", "data")

    def __init__(self, channel: str, data: Dict[str, Any]):
        if channel not in CHANNELS:
            raise ValueError(f"Unknown log channel '{channel}'")
        self.channel = channel
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Appends LogEntry lines to {log_dir}/{channel}/{today}.jsonl.

    Thread-safe — one lock per file path.
    """

    def __init__(self, log_dir: str = ".techdoc/logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        for channel in CHANNELS:
            (self._log_dir / channel).mkdir(parents=True, exist_ok=True)

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def write(self, entry: LogEntry) -> None:
        self.write_batch([entry])

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write entries, opening each target file once."""
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            grouped[str(self._resolve_path(entry.channel))].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def read(self, channel: str, day: Optional[date] = None) -> List[Dict[str, Any]]:
        """Return the parsed entries of one channel for *day* (default today)."""
        path = self._resolve_path(channel, day)
        if not path.exists():
            return []
        entries: List[Dict[str, Any]] = []
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning(f"Skipping corrupt log line in {path}")
        return entries

    def _resolve_path(self, channel: str, day: Optional[date] = None) -> Path:
        day = day or date.today()
        return self._log_dir / channel / f"{day.isoformat()}.jsonl"


class AsyncLogQueue:
    """
    Buffers entries in memory; a daemon writer thread appends them in batches.

    The writer wakes as soon as an entry arrives (or every flush_interval_ms
    to check for stop) and writes at most flush_batch_size entries per file
    pass. push() never blocks: when max_queue_size entries are waiting the
    entry is dropped and counted.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._file_logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = max(1, flush_batch_size)
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._stopping = threading.Event()
        self._writer: Optional[threading.Thread] = None
        self._dropped = 0

    def start(self) -> None:
        if self._writer is not None and self._writer.is_alive():
            return
        self._stopping.clear()
        self._writer = threading.Thread(
            target=self._run, name="techdoc-log-writer", daemon=True
        )
        self._writer.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the writer, then write out everything still queued."""
        self._stopping.set()
        if self._writer is not None:
            self._writer.join(timeout=timeout)
            self._writer = None
        self._write(self._take(wait=False, limit=None))
        if self._dropped:
            logger.warning(f"{self._dropped} log entries were dropped (queue full)")

    def push(self, entry: LogEntry) -> bool:
        try:
            self._queue.put_nowait(entry)
        except Full:
            self._dropped += 1
            return False
        return True

    def _run(self) -> None:
        while not self._stopping.is_set():
            self._write(self._take(wait=True, limit=self._flush_batch_size))

    def _take(self, wait: bool, limit: Optional[int]) -> List[LogEntry]:
        """Dequeue up to *limit* entries; with *wait*, block one interval for the first."""
        batch: List[LogEntry] = []
        if wait:
            try:
                batch.append(self._queue.get(timeout=self._flush_interval))
            except Empty:
                return batch
        while limit is None or len(batch) < limit:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        return batch

    def _write(self, batch: List[LogEntry]) -> None:
        if not batch:
            return
        try:
            self._file_logger.write_batch(batch)
        except OSError as e:
            logger.error(f"Could not write {len(batch)} log entries: {e}")

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(event: str, level: str, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    entry.update({k: v for k, v in extra.items() if v is not None})
    return entry


def log_document_operation(
    operation: str,
    document_id: Any,
    name: Optional[str] = None,
    folder: Optional[str] = None,
    path: Optional[str] = None,
    duration_ms: Optional[float] = None,
) -> LogEntry:
    """Build an entry for a successful document mutation (create, move, delete, …)."""
    data = _base_entry(
        event=f"document_{operation}",
        level="INFO",
        operation=operation,
        document_id=str(document_id),
        name=name,
        folder=folder,
        path=path,
        duration_ms=duration_ms,
    )
    return LogEntry("documents", data)


def log_index_event(
    event: str,
    index_path: str,
    record_count: Optional[int] = None,
    level: str = "INFO",
) -> LogEntry:
    """Build an entry for index lifecycle events (rebuilt, initialized)."""
    data = _base_entry(
        event=event,
        level=level,
        index_path=index_path,
        record_count=record_count,
    )
    return LogEntry("index", data)


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
) -> LogEntry:
    data = _base_entry(
        event="api_request",
        level="INFO" if status_code < 500 else "ERROR",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )
    return LogEntry("api", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event entry (startup, shutdown)."""
    return LogEntry("system", _base_entry(event=event, level=level, details=details))


# ---------------------------------------------------------------------------
# Global Log Queue
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = ".techdoc/logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AsyncLogQueue:
    """Start the global async log queue, replacing any running one."""
    global _global_queue
    if _global_queue is not None:
        _global_queue.stop()
    _global_queue = AsyncLogQueue(
        file_logger=FileLogger(log_dir=log_dir),
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push an entry to the global queue. False when no queue is running."""
    if _global_queue is None:
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the global log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None

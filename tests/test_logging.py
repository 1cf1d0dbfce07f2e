"""Unit tests for techdoc.engine.logging — FileLogger, AsyncLogQueue, entry builders."""

import json
import logging
import uuid
from datetime import date

import pytest

from techdoc.engine.logging import (
    CHANNELS,
    AsyncLogQueue,
    FileLogger,
    LogEntry,
    configure_logging,
    get_log_queue,
    init_logging,
    log,
    log_api_request,
    log_document_operation,
    log_index_event,
    log_system_event,
    shutdown_logging,
)


class TestLogEntry:
    def test_creation(self):
        entry = LogEntry("documents", {"key": "value"})
        assert entry.channel == "documents"
        assert entry.data == {"key": "value"}

    def test_unknown_channel(self):
        with pytest.raises(ValueError, match="Unknown log channel"):
            LogEntry("security", {})

    def test_to_json(self):
        parsed = json.loads(LogEntry("system", {"event": "x"}).to_json())
        assert parsed["event"] == "x"


class TestFileLogger:
    def test_creates_channel_dirs(self, tmp_path):
        FileLogger(log_dir=str(tmp_path / "logs"))
        for channel in CHANNELS:
            assert (tmp_path / "logs" / channel).is_dir()

    def test_write_and_read(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        fl.write(LogEntry("api", {"status_code": 200}))
        fl.write(LogEntry("api", {"status_code": 404}))
        entries = fl.read("api")
        assert [e["status_code"] for e in entries] == [200, 404]

    def test_daily_file_name(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        fl.write(LogEntry("index", {"event": "index_rebuilt"}))
        assert (tmp_path / "index" / f"{date.today().isoformat()}.jsonl").exists()

    def test_write_batch_groups_by_channel(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        fl.write_batch([
            LogEntry("documents", {"n": 1}),
            LogEntry("system", {"n": 2}),
            LogEntry("documents", {"n": 3}),
        ])
        assert [e["n"] for e in fl.read("documents")] == [1, 3]
        assert [e["n"] for e in fl.read("system")] == [2]

    def test_read_missing_day(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        assert fl.read("documents", date(2000, 1, 1)) == []

    def test_read_skips_corrupt_lines(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        fl.write(LogEntry("system", {"ok": True}))
        path = tmp_path / "system" / f"{date.today().isoformat()}.jsonl"
        with open(path, "a", encoding="utf-8") as f:
            f.write("{not json\n")
        assert fl.read("system") == [{"ok": True}]


class TestAsyncLogQueue:
    def test_stop_drains_pending(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        queue = AsyncLogQueue(fl, flush_interval_ms=10)
        for i in range(5):
            assert queue.push(LogEntry("documents", {"i": i}))
        queue.stop()
        assert len(fl.read("documents")) == 5

    def test_background_flush(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        queue = AsyncLogQueue(fl, flush_interval_ms=10)
        queue.start()
        queue.push(LogEntry("api", {"i": 1}))
        queue.stop()
        assert fl.read("api") == [{"i": 1}]
        assert queue.pending_count == 0

    def test_full_queue_drops(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        queue = AsyncLogQueue(fl, max_queue_size=2)
        assert queue.push(LogEntry("system", {}))
        assert queue.push(LogEntry("system", {}))
        assert not queue.push(LogEntry("system", {}))
        assert queue.dropped_count == 1

    def test_small_batches_keep_order(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        queue = AsyncLogQueue(fl, flush_interval_ms=10, flush_batch_size=2)
        queue.start()
        for i in range(7):
            queue.push(LogEntry("documents", {"i": i}))
        queue.stop()
        assert [e["i"] for e in fl.read("documents")] == list(range(7))

    def test_restart_after_stop(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        queue = AsyncLogQueue(fl, flush_interval_ms=10)
        queue.start()
        queue.start()
        queue.stop()
        queue.start()
        queue.push(LogEntry("system", {"event": "again"}))
        queue.stop()
        assert fl.read("system") == [{"event": "again"}]


class TestEntryBuilders:
    def test_document_operation(self):
        doc_id = uuid.uuid4()
        entry = log_document_operation("move", doc_id, name="a", folder="x", path="/r/x/a.md")
        assert entry.channel == "documents"
        assert entry.data["event"] == "document_move"
        assert entry.data["document_id"] == str(doc_id)
        assert entry.data["folder"] == "x"
        assert "duration_ms" not in entry.data

    def test_index_event(self):
        entry = log_index_event("index_rebuilt", "/r/.index.json", record_count=3)
        assert entry.channel == "index"
        assert entry.data["record_count"] == 3

    def test_api_request_level(self):
        assert log_api_request("GET", "/documents", 200, 1.5).data["level"] == "INFO"
        assert log_api_request("GET", "/documents", 500, 1.5).data["level"] == "ERROR"

    def test_system_event(self):
        entry = log_system_event("server_started", details={"port": 8000})
        assert entry.channel == "system"
        assert entry.data["details"] == {"port": 8000}
        assert "timestamp" in entry.data


class TestGlobalQueue:
    def test_log_without_queue(self):
        shutdown_logging()
        assert log(log_system_event("ignored")) is False

    def test_init_and_shutdown(self, tmp_path):
        queue = init_logging(log_dir=str(tmp_path), flush_interval_ms=10)
        assert get_log_queue() is queue
        assert log(log_system_event("server_started"))
        shutdown_logging()
        assert get_log_queue() is None
        events = FileLogger(log_dir=str(tmp_path)).read("system")
        assert [e["event"] for e in events] == ["server_started"]

    def test_init_replaces_running_queue(self, tmp_path):
        first = init_logging(log_dir=str(tmp_path / "a"))
        second = init_logging(log_dir=str(tmp_path / "b"))
        assert first is not second
        assert get_log_queue() is second


class TestConfigureLogging:
    def test_idempotent(self):
        root = logging.getLogger()
        configure_logging("DEBUG")
        configure_logging("warning")
        ours = [h for h in root.handlers if getattr(h, "_techdoc", False)]
        assert len(ours) == 1
        assert root.level == logging.WARNING

"""
TechDoc CLI — Store bootstrap, maintenance and the HTTP server.

Commands:
- techdoc init           — Create the root folder and the index (rebuilding from disk)
- techdoc serve          — Start the HTTP API (uvicorn)
- techdoc rebuild-index  — Discard the index and rebuild it from the file tree
- techdoc verify         — Report index/file-tree inconsistencies
- techdoc search         — Search documents from the command line

Global options go before the command:
    techdoc --config techdoc.yaml --root ./docs verify
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from techdoc.documents.engine import DocumentEngine
from techdoc.documents.index import IndexStore
from techdoc.engine.config import TechDocConfig, load_config
from techdoc.engine.errors import TechDocError
from techdoc.engine.logging import (
    configure_logging,
    init_logging,
    log,
    log_system_event,
    shutdown_logging,
)

logger = logging.getLogger("techdoc.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="techdoc",
        description="TechDoc — file-backed document store",
    )
    parser.add_argument("--config", help="Path to techdoc.yaml (default: auto-discover)")
    parser.add_argument("--root", help="Override storage.location")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Create root folder and index")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", help="Host to bind (default: server.host)")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default: server.port)")

    subparsers.add_parser("rebuild-index", help="Rebuild the index from the file tree")

    subparsers.add_parser("verify", help="Check the index against the file tree")

    search_parser = subparsers.add_parser("search", help="Search documents")
    search_parser.add_argument("pattern", nargs="?", default="", help="Name filter (wildcards allowed)")
    search_parser.add_argument("--folder", default="", help="Folder filter (wildcards allowed)")
    search_parser.add_argument(
        "--include-deleted", action="store_true", help="Also list documents in the trash"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except TechDocError as e:
        print(f"[ERROR] {e.message}")
        return 1
    if args.root:
        config.storage.location = args.root

    configure_logging(config.logging.level)

    commands = {
        "init": cmd_init,
        "serve": cmd_serve,
        "rebuild-index": cmd_rebuild_index,
        "verify": cmd_verify,
        "search": cmd_search,
    }
    return commands[args.command](args, config)


def open_store(config: TechDocConfig) -> IndexStore:
    """Construct and initialize the process-wide index store."""
    store = IndexStore(
        config.root_path(),
        index_file_name=config.storage.index_file,
        trash_folder_name=config.storage.trash_folder,
    )
    store.init()
    return store


def cmd_init(args: argparse.Namespace, config: TechDocConfig) -> int:
    store = open_store(config)
    count = len(store.read())
    print(f"[OK] Store ready at {store.root} ({count} document(s) indexed)")
    return 0


def cmd_serve(args: argparse.Namespace, config: TechDocConfig) -> int:
    """Initialize the store, start the log queue and run uvicorn until stopped."""
    import uvicorn

    from techdoc.api.server import create_app

    init_logging(
        log_dir=config.logging.directory,
        flush_interval_ms=config.logging.flush_interval_ms,
        flush_batch_size=config.logging.flush_batch_size,
        max_queue_size=config.logging.max_queue_size,
    )
    try:
        engine = DocumentEngine(open_store(config))
        host = args.host or config.server.host
        port = args.port or config.server.port
        log(log_system_event("server_started", details={"host": host, "port": port, "root": str(engine.store.root)}))
        logger.info(f"Serving {engine.store.root} on http://{host}:{port}")
        uvicorn.run(create_app(engine), host=host, port=port)
        log(log_system_event("server_stopped"))
    finally:
        shutdown_logging()
    return 0


def cmd_rebuild_index(args: argparse.Namespace, config: TechDocConfig) -> int:
    """Rebuild mints new identifiers; ids held by clients stop resolving."""
    store = open_store(config)
    count = store.rebuild()
    print(f"[OK] Index rebuilt: {count} document(s)")
    return 0


def cmd_verify(args: argparse.Namespace, config: TechDocConfig) -> int:
    engine = DocumentEngine(open_store(config))
    issues = engine.verify()
    if not issues:
        print("[OK] Index and file tree are consistent")
        return 0
    for issue in issues:
        doc = f" (document {issue.document_id})" if issue.document_id else ""
        print(f"[{issue.kind}] {issue.path}{doc}")
    print(f"[ERROR] {len(issues)} issue(s) found")
    return 1


def cmd_search(args: argparse.Namespace, config: TechDocConfig) -> int:
    engine = DocumentEngine(open_store(config))
    records = engine.search(args.folder, args.pattern, args.include_deleted)
    print(json.dumps([r.to_public() for r in records], indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

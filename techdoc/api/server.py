"""
TechDoc HTTP API — thin FastAPI adapter over a DocumentEngine.

Routes (all under /documents):
    GET    /documents?folder=&name=&includeDeleted=   search
    POST   /documents?folder=&name=&type=&overwrite=  create (body = content)
    GET    /documents/{id}                            get
    GET    /documents/{id}/content                    load content (text/plain)
    POST   /documents/{id}/content                    save content (body = content)
    DELETE /documents/{id}                            delete
    PUT    /documents/{id}/undelete                   undelete
    PUT    /documents/{id}/rename?newName=            rename
    POST   /documents/{id}/move?toFolder=             move
    POST   /documents/{id}/create-copy?name=          create copy

Bodies are raw text or a JSON string. DocumentNotFoundError maps to 404,
any other TechDocUserError to 400; everything else is a 500.

Run:
    techdoc serve --config techdoc.yaml
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from techdoc import __version__
from techdoc.documents.engine import DocumentEngine
from techdoc.engine.errors import DocumentNotFoundError, TechDocUserError
from techdoc.engine.logging import log, log_api_request


def _parse_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_id", "message": f'"{value}" is not a valid document id'},
        ) from None


async def _read_text_body(request: Request) -> str:
    """Request body as text; JSON bodies must be a string (or null)."""
    body = await request.body()
    if not body:
        return ""
    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    try:
        if media_type == "application/json" or media_type.endswith("+json"):
            value = json.loads(body)
            if value is None:
                return ""
            if not isinstance(value, str):
                raise ValueError("JSON body must be a string")
            return value
        return body.decode("utf-8")
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_body", "message": str(e)},
        ) from None


def _created(doc_id: UUID) -> JSONResponse:
    return JSONResponse(
        status_code=201,
        content={"id": str(doc_id)},
        headers={"Location": f"/documents/{doc_id}"},
    )


def create_app(engine: DocumentEngine) -> FastAPI:
    """Build the API for an engine whose store is already initialized."""
    app = FastAPI(
        title="TechDoc",
        description="File-backed document store",
        version=__version__,
    )
    app.state.engine = engine

    # -------------------------------------------------------------------
    # Error mapping + request log
    # -------------------------------------------------------------------

    @app.exception_handler(DocumentNotFoundError)
    async def _not_found(request: Request, exc: DocumentNotFoundError):
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "message": exc.message},
        )

    @app.exception_handler(TechDocUserError)
    async def _bad_request(request: Request, exc: TechDocUserError):
        return JSONResponse(
            status_code=400,
            content={"error": exc.error_type, "message": exc.message},
        )

    @app.middleware("http")
    async def _log_request(request: Request, call_next):
        started = time.monotonic()
        response = await call_next(request)
        log(log_api_request(
            request.method,
            request.url.path,
            response.status_code,
            round((time.monotonic() - started) * 1000, 2),
        ))
        return response

    # -------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------

    @app.get("/health")
    def health() -> Dict[str, Any]:
        status = engine.store.health()
        healthy = status["initialized"] and status["index_exists"]
        return {"status": "healthy" if healthy else "unhealthy", **status}

    @app.get("/documents")
    def search(
        folder: Optional[str] = None,
        name: Optional[str] = None,
        include_deleted: bool = Query(default=False, alias="includeDeleted"),
    ) -> List[Dict[str, Any]]:
        """Both folder and name accept wildcards, e.g. "mydocs/ref*" or "*.md"."""
        return [r.to_public() for r in engine.search(folder, name, include_deleted)]

    @app.post("/documents", status_code=201)
    async def create(
        request: Request,
        name: Optional[str] = None,
        folder: Optional[str] = None,
        type: Optional[str] = None,
        overwrite: bool = False,
    ):
        content = await _read_text_body(request)
        record = await run_in_threadpool(engine.create, folder, name, type, content, overwrite)
        return _created(record.id)

    @app.get("/documents/{doc_id}")
    def get_document(doc_id: str) -> Dict[str, Any]:
        return engine.get(_parse_id(doc_id)).to_public()

    @app.get("/documents/{doc_id}/content", response_class=PlainTextResponse)
    def get_content(doc_id: str):
        return PlainTextResponse(engine.load_content(_parse_id(doc_id)))

    @app.post("/documents/{doc_id}/content")
    async def save_content(doc_id: str, request: Request):
        parsed = _parse_id(doc_id)
        content = await _read_text_body(request)
        await run_in_threadpool(engine.save_content, parsed, content)
        return Response(status_code=200)

    @app.delete("/documents/{doc_id}")
    def delete(doc_id: str):
        engine.delete(_parse_id(doc_id))
        return Response(status_code=200)

    @app.put("/documents/{doc_id}/undelete")
    def undelete(doc_id: str):
        engine.undelete(_parse_id(doc_id))
        return Response(status_code=200)

    @app.put("/documents/{doc_id}/rename")
    def rename(doc_id: str, new_name: Optional[str] = Query(default=None, alias="newName")):
        engine.rename(_parse_id(doc_id), new_name)
        return Response(status_code=200)

    @app.post("/documents/{doc_id}/move")
    def move(doc_id: str, to_folder: Optional[str] = Query(default=None, alias="toFolder")):
        engine.move(_parse_id(doc_id), to_folder)
        return Response(status_code=200)

    @app.post("/documents/{doc_id}/create-copy", status_code=201)
    def create_copy(doc_id: str, name: Optional[str] = None):
        record = engine.create_copy(_parse_id(doc_id), name or None)
        return _created(record.id)

    return app

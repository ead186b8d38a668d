"""
HTTP API: serves the prebuilt artifacts to allowed origins and answers
server-side searches against the same index.
"""

import threading
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import FileResponse, JSONResponse, Response

from ..core import config
from ..core.errors import FormatError, StoreInitError, TransportError, ValidationError
from ..core.loader import load_store_from_artifacts
from ..core.search_service import search
from ..util.logging import logger
from ..vector.index import IVectorStore
from .schemas import ErrorResponse, HealthResponse, SearchHit, SearchResponse

app = FastAPI(
    title="fetchmoji",
    version=config.VERSION,
    description="Semantic emoji search over a quantized embedding index",
    docs_url="/docs" if config.debug_enabled() else None,
    redoc_url="/redoc" if config.debug_enabled() else None,
)

_store = None
_store_lock = threading.Lock()


def get_store() -> IVectorStore:
    """Load the configured artifacts into a store once per process."""
    global _store
    with _store_lock:
        if _store is None:
            _store = load_store_from_artifacts(embedder=config.get_embedding_provider())
        return _store


def is_protected_path(path: str) -> bool:
    return any(suffix in path for suffix in config.PROTECTED_SUFFIXES)


@app.middleware("http")
async def origin_allowlist(request: Request, call_next):
    """CORS for allowed origins, limited to artifact downloads."""
    origin = request.headers.get("origin")
    allowed = origin is not None and origin in config.ALLOWED_ORIGINS

    if request.method == "OPTIONS":
        request_method = request.headers.get("access-control-request-method")
        if not request_method:
            # plain OPTIONS, no preflight headers to answer
            return Response(status_code=204)
        headers = {
            "Access-Control-Allow-Methods": "GET,HEAD,POST,PUT,PATCH,DELETE,OPTIONS",
            "Access-Control-Allow-Headers": request.headers.get("access-control-request-headers", ""),
            "Access-Control-Max-Age": "86400",
            "Vary": "Origin, Access-Control-Request-Method, Access-Control-Request-Headers",
        }
        if allowed:
            headers["Access-Control-Allow-Origin"] = origin
        return Response(status_code=204, headers=headers)

    response = await call_next(request)
    if allowed and is_protected_path(request.url.path):
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers.append("Vary", "Origin")
    return response


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error="validation_error", message=str(exc)).model_dump(),
    )


@app.exception_handler(TransportError)
@app.exception_handler(FormatError)
@app.exception_handler(StoreInitError)
async def store_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"Store unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(error="store_unavailable", message=str(exc)).model_dump(),
    )


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Report whether the index has been loaded."""
    row_count = _store.count() if _store is not None else 0
    return HealthResponse(
        status="healthy",
        version=config.VERSION,
        db_ready=_store is not None,
        row_count=row_count,
    )


@app.get("/artifacts/{path:path}")
def get_artifact(path: str):
    base = Path(config.ARTIFACTS_DIR).resolve()
    target = (base / path).resolve()
    if not target.is_relative_to(base) or not target.is_file():
        raise HTTPException(status_code=404, detail="Artifact not found")
    return FileResponse(target)


@app.get("/search", response_model=SearchResponse)
def search_endpoint(
    q: str = Query(..., description="Free-text query"),
    limit: int = Query(None, ge=1, le=100),
    threshold: float = Query(None, ge=-1.0, le=1.0),
    store: IVectorStore = Depends(get_store),
):
    if not q.strip():
        raise HTTPException(status_code=400, detail="Query cannot be empty")

    results = search(store, q, match_threshold=threshold, limit=limit)
    return SearchResponse(
        query=q,
        results=[
            SearchHit(rank=item["rank"], emoji=item["emoji"], content=item["content"], distance=item["distance"])
            for item in results
        ],
    )

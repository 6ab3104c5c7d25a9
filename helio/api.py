"""HTTP API: REST routes over the bookmark store, plus the optional web UI."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings
from .errors import BookmarkNotFoundError, BookmarkValidationError
from .fetch import fetch_metadata
from .log import get_logger
from .store import BookmarkStore
from .url_norm import is_valid_http_url, normalize_user_url

log = get_logger(__name__)

WEB_DIR = Path(__file__).resolve().parent / "web"


class BookmarkCreateIn(BaseModel):
    """Body of POST /bookmarks."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str
    title: str
    description: Optional[str] = None
    tags: Union[List[str], str, None] = None
    notes: Optional[str] = None
    site_name: Optional[str] = Field(default=None, alias="siteName")
    image: Optional[str] = None
    language: Optional[str] = None


class BookmarkUpdateIn(BaseModel):
    """Body of PUT /bookmarks/{id}. Only the fields the client sent are applied."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Union[List[str], str, None] = None
    notes: Optional[str] = None
    site_name: Optional[str] = Field(default=None, alias="siteName")
    image: Optional[str] = None
    language: Optional[str] = None


def get_store(request: Request) -> BookmarkStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


router = APIRouter()


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "version": __version__}


@router.get("/bookmarks")
def list_bookmarks(
    q: Optional[str] = Query(default=None, description="Case-insensitive substring search"),
    store: BookmarkStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    bookmarks = store.search(q) if q is not None else store.list()
    return [b.to_dict() for b in bookmarks]


@router.get("/bookmarks/{bookmark_id}")
def get_bookmark(bookmark_id: str, store: BookmarkStore = Depends(get_store)) -> Dict[str, Any]:
    bookmark = store.get(bookmark_id)
    if bookmark is None:
        raise BookmarkNotFoundError(bookmark_id)
    return bookmark.to_dict()


@router.post("/bookmarks", status_code=201)
def create_bookmark(data: BookmarkCreateIn, store: BookmarkStore = Depends(get_store)) -> Dict[str, Any]:
    return store.create(data.model_dump()).to_dict()


@router.put("/bookmarks/{bookmark_id}")
def update_bookmark(
    bookmark_id: str,
    data: BookmarkUpdateIn,
    store: BookmarkStore = Depends(get_store),
) -> Dict[str, Any]:
    changes = data.model_dump(exclude_unset=True)
    return store.update(bookmark_id, changes).to_dict()


@router.delete("/bookmarks/{bookmark_id}")
def delete_bookmark(bookmark_id: str, store: BookmarkStore = Depends(get_store)) -> Dict[str, Any]:
    if not store.delete(bookmark_id):
        raise BookmarkNotFoundError(bookmark_id)
    return {"ok": True}


@router.get("/metadata")
def get_metadata(
    url: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    target = normalize_user_url(url)
    if target is None:
        raise BookmarkValidationError("url is required")
    if not is_valid_http_url(target):
        raise BookmarkValidationError("invalid url")
    meta = fetch_metadata(
        target,
        timeout_s=settings.fetch_timeout_s,
        user_agent=settings.fetch_user_agent,
        max_bytes=settings.fetch_max_bytes,
    )
    return meta.to_dict()


def _error(message: str, status: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON"
    loc = [str(p) for p in first.get("loc", ()) if p != "body"]
    if loc:
        return f"{'.'.join(loc)}: {first.get('msg', 'invalid')}"
    return str(first.get("msg", "Invalid request"))


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookmarkValidationError)
    async def _on_validation(_request: Request, exc: BookmarkValidationError) -> JSONResponse:
        return _error(exc.message, 400)

    @app.exception_handler(RequestValidationError)
    async def _on_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(_describe_validation_error(exc), 400)

    @app.exception_handler(BookmarkNotFoundError)
    async def _on_not_found(_request: Request, _exc: BookmarkNotFoundError) -> JSONResponse:
        return _error("Not found", 404)

    @app.exception_handler(StarletteHTTPException)
    async def _on_http(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(str(exc.detail), exc.status_code)

    @app.exception_handler(OSError)
    async def _on_storage(request: Request, exc: OSError) -> JSONResponse:
        log.exception("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _error("Storage error", 500)


class WebUIFiles(StaticFiles):
    """Static web UI; unknown paths fall back to ``index.html``."""

    async def get_response(self, path: str, scope):
        try:
            return await super().get_response(path, scope)
        except StarletteHTTPException as e:
            if e.status_code != 404:
                raise
            return await super().get_response("index.html", scope)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[BookmarkStore] = None,
    *,
    serve_ui: bool = False,
) -> FastAPI:
    settings = settings or Settings.from_env()
    store = store or BookmarkStore(settings.data_file)

    app = FastAPI(
        title="helio",
        description="Personal bookmark manager API.",
        version=__version__,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["content-type"],
    )
    _install_error_handlers(app)

    app.include_router(router)
    # The bundled web UI talks to /api/...
    app.include_router(router, prefix="/api", include_in_schema=False)

    if serve_ui:
        static_dir = Path(settings.static_dir) if settings.static_dir else WEB_DIR
        if not (static_dir / "index.html").exists():
            raise FileNotFoundError(f"web UI assets missing: {static_dir / 'index.html'}")
        app.mount("/", WebUIFiles(directory=str(static_dir), html=True), name="web")
        log.info("Serving web UI from %s", static_dir)

    return app

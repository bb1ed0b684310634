"""
Main API module for Shorty Platform.

Responsibilities:
    - Expose REST endpoints for creating short links and redirecting
    - Map Link Store errors to HTTP status codes
    - Publish the client-facing part of the configuration
    - Run the stale-link cleanup job for the lifetime of the app

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - Settings are read once and injected into storage, Link Store and scheduler.
    - In-memory storage by default; sqlite/postgres via SHORTY_STORAGE_BACKEND.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, Set

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from shorty_platform.config import Settings
from shorty_platform.errors import LinkConflict, PayloadTooLarge, ShortyError
from shorty_platform.link import MAX_LIMIT, LinkConfig
from shorty_platform.manager.link_store import LinkStore
from shorty_platform.scheduler.cleanup import CleanupScheduler
from shorty_platform.storage.base import BaseStorage
from shorty_platform.storage.storage_factory import get_storage


class LinkRequest(BaseModel):
    """Request payload for creating a link with custom settings."""
    model_config = ConfigDict(populate_by_name=True)

    link: str
    custom_id: Optional[str] = Field(default=None, alias="id")
    max_uses: Optional[int] = Field(default=None, ge=0, le=MAX_LIMIT)
    valid_for: Optional[int] = Field(default=None, ge=0, le=MAX_LIMIT)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[BaseStorage] = None,
    link_store: Optional[LinkStore] = None,
) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        settings: Defaults to `Settings.from_env()`.
        storage: Defaults to the backend selected by settings.
        link_store: Defaults to a LinkStore over `storage`.

    Returns:
        FastAPI: A fully configured application instance with its own
                 storage, Link Store and cleanup scheduler.
    """
    log = logging.getLogger("shorty")

    # basic console logging (optional)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    settings = settings or Settings.from_env()
    if link_store is None:
        storage = storage or get_storage(settings=settings)
        link_store = LinkStore(storage=storage, settings=settings)
    cleanup = CleanupScheduler(link_store, interval_seconds=settings.clean_interval_seconds)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        link_store.storage.ensure_schema()
        if settings.cleanup_enabled:
            cleanup.start()
        log.info("Shorty storage backend: %s", type(link_store.storage).__name__)
        yield
        cleanup.shutdown()

    app = FastAPI(
        title="Shorty Platform",
        description="URL shortener with use- and time-limited links",
        docs_url="/docs",
        lifespan=lifespan,
    )
    app.state.link_store = link_store
    app.state.cleanup = cleanup

    @app.exception_handler(ShortyError)
    async def shorty_error_handler(_: Request, exc: ShortyError) -> JSONResponse:
        if exc.status_code >= 500:
            log.error("Request failed: %s", exc, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        """Refuse request bodies larger than `max_json_size` before they are read."""
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > settings.max_json_size:
            exc = PayloadTooLarge()
            return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})
        return await call_next(request)

    def fixed_get_paths() -> Set[str]:
        # Ids equal to these never reach `resolve`; the fixed routes answer first.
        return {
            route.path.lstrip("/")
            for route in app.routes
            if "{" not in route.path and "GET" in (getattr(route, "methods", None) or ())
        }

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/config")
    def get_config() -> Dict[str, Any]:
        return settings.public_dict()

    @app.post("/custom", response_class=PlainTextResponse)
    def create_custom(req: LinkRequest) -> str:
        """
        Create a short link with a custom id and/or limits.

        Returns:
            str: The public short URL.

        Raises:
            ShortyError: 400 on validation errors, 409 if the id is taken by a valid
                link or by one of the app's own routes.
        """
        if req.custom_id and req.custom_id in fixed_get_paths():
            raise LinkConflict()
        link = link_store.create_with_config(
            LinkConfig(
                link=req.link,
                custom_id=req.custom_id,
                max_uses=req.max_uses,
                valid_for=req.valid_for,
            )
        )
        formatted = link.formatted(settings.public_url)
        log.info("Shortening URL %s to %s", link.redirect_to, formatted)
        return formatted

    @app.get("/{link_id:path}")
    def resolve(link_id: str) -> Response:
        """Redirect to the destination of a valid link, 404 otherwise."""
        link = link_store.get(link_id)
        if link is None:
            return Response(status_code=404)
        log.info("Return url for %s is %s", link_id, link.redirect_to)
        return RedirectResponse(url=link.redirect_to, status_code=307)

    @app.post("/{url:path}", response_class=PlainTextResponse)
    def create_default(url: str, request: Request) -> str:
        """
        Shorten the URL given as the request path, e.g. `POST /https://example.com/a?b=c`.

        Returns:
            str: The public short URL.
        """
        if request.url.query:
            url = f"{url}?{request.url.query}"
        link = link_store.create_default(url)
        formatted = link.formatted(settings.public_url)
        log.info("Shortening URL %s to %s", link.redirect_to, formatted)
        return formatted

    return app


# `uvicorn main:app` and `from main import app` continue to work.
app = create_app()

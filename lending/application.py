"""Application factory and top-level wiring for the lending tracker.

This module is the glue that brings together configuration, database setup,
HTML templates, API routers and error handling.

*What:* :func:`create_app` returns a ready-to-serve FastAPI instance.
*When:* Called once per process by :mod:`lending.main`, and once per test.
*Why:* Building the engine here, instead of at import time, lets tests hand in
an in-memory database and keeps a single store handle per application.
*How:* The engine, session factory, settings and templates are stored on
``app.state``; request handlers reach them through dependencies.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import AppSettings, get_settings
from .core.errors import (
    LendingError,
    http_exception_handler,
    lending_exception_handler,
    validation_exception_handler,
)
from .core.jinja import get_templates
from .db.session import build_engine, build_session_factory, init_db
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .routers import api_equipment, api_records, ui

STATIC_PATH = "/static"


def create_app(settings: AppSettings | None = None, engine: Engine | None = None) -> FastAPI:
    settings = settings or get_settings()
    if engine is None:
        engine = build_engine(settings.database_url, sqlite_foreign_keys=settings.SQLITE_FOREIGN_KEYS)
    # ``create_all`` only adds missing tables, so existing data is untouched.
    init_db(engine)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.templates = get_templates(settings)

    if settings.static_dir.is_dir():
        app.mount(STATIC_PATH, StaticFiles(directory=str(settings.static_dir)), name="static")

    # Starlette runs the last-added middleware first, so request ids wrap
    # everything else.
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
            expose_headers=[api_equipment.REFRESH_HEADER, "X-Request-ID"],
        )
    app.add_middleware(SecurityHeadersMiddleware, static_path=STATIC_PATH)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(ui.router)
    app.include_router(api_equipment.router)
    app.include_router(api_records.router)

    app.add_exception_handler(LendingError, lending_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, bool]:
        return {"ok": True}

    return app


__all__ = ["create_app"]

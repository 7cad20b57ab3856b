from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from app.api import router
from app.web import router as web_router
from datastore.readings import build_default_engine, init_schema
from logging_config import configure_logging
from services.access_gate import COOKIE_NAME, AccessGate
from services.snapshot import build_default_aggregator
from settings import get_settings

logger = logging.getLogger(__name__)

_OPEN_PREFIXES = ("/api/", "/static/")
_OPEN_PATHS = frozenset({"/password", "/favicon.ico", "/health"})


def is_gated_path(path: str) -> bool:
    """Pages require a session; API routes, assets and the login page do not."""
    if path in _OPEN_PATHS:
        return False
    return not path.startswith(_OPEN_PREFIXES)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    init_schema(build_default_engine())
    aggregator = build_default_aggregator()
    try:
        yield
    finally:
        aggregator.shutdown()
        build_default_aggregator.cache_clear()


async def access_gate_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    if not is_gated_path(request.url.path):
        return await call_next(request)

    gate = AccessGate.from_settings(get_settings())
    if gate.is_authenticated(request.cookies.get(COOKIE_NAME)):
        return await call_next(request)

    logger.info("Redirecting unauthenticated request", extra={"path": request.url.path})
    return RedirectResponse(url="/password", status_code=307)


async def request_timing_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    start_time = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s",
        request.method,
        request.url.path,
        extra={
            "path": request.url.path,
            "status": response.status_code,
            "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
        },
    )
    return response


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Messstation",
        description="Live and historical environmental sensor readings with CSV export.",
        version="0.1.0",
        lifespan=lifespan,
    )
    static_dir = Path(__file__).resolve().parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    app.middleware("http")(access_gate_middleware)
    app.middleware("http")(request_timing_middleware)
    app.include_router(router)
    app.include_router(web_router)
    return app


app = create_app()

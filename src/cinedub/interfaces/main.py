from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request

from cinedub.infrastructure.config import AppConfig
from cinedub.interfaces.app_state import AppState
from cinedub.interfaces.composition import lifespan

log = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def build_app(config: AppConfig) -> FastAPI:
    """Create the app around *config*.

    Nothing is opened here; the HTTP client, registry and health task
    belong to :func:`lifespan`.
    """
    app = FastAPI(
        title="cinedub",
        description="Resolves titles to streams, preferring PT-BR dubbed sources",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from cinedub.interfaces.api.streams.router import router as streams_router

    app.include_router(streams_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        # Every log line emitted while serving the request carries its id
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
            )
            structlog.contextvars.clear_contextvars()

    return app

"""FastAPI application wiring for the user service."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool
import uvicorn

from .api.errors import register_error_handlers
from .api.routes import router as api_router
from .config import get_settings
from .repository import UserRepository

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the Postgres pool and the repository for the app lifecycle."""
    logging.getLogger("user_service").setLevel(settings.log_level)
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    app.state.pool = pool
    app.state.user_repository = UserRepository(pool)
    try:
        yield
    finally:
        pool.close()


def create_app() -> FastAPI:
    """Build the application with routes, error handlers and operational endpoints."""
    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    register_error_handlers(app)

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        """Return a minimal readiness indicator used by orchestration systems."""
        return {"status": "ok"}

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(api_router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_level=settings.log_level.lower())

"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coffee_sentinel.api.deps import AppState, api_key_middleware
from coffee_sentinel.api.routes import router
from coffee_sentinel.api.schemas import ErrorResponse
from coffee_sentinel.core.config import SentinelConfig, load_config
from coffee_sentinel.core.exceptions import CoffeeSentinelError, ConfigError, FetchError
from coffee_sentinel.ingestion.store import create_store

logger = logging.getLogger(__name__)

CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state._pending_config
    store = await create_store(config.storage)

    app.state.app_state = AppState(config=config, store=store)

    yield

    await store.close()


def create_app(config: SentinelConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Coffee Sentinel API",
        description="Daily coffee reference price ingestion",
        version=_version(),
        lifespan=lifespan,
    )

    config = config or load_config()

    # Stash config so lifespan can retrieve it
    app.state._pending_config = config
    api_config = config.api

    # Optional API key middleware, registered first so CORS wraps its 401s
    if api_config.api_key:
        app.middleware("http")(api_key_middleware)

    # CORS: wildcard outside production, a single origin in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOWED_HEADERS,
    )

    app.include_router(router, prefix="/api")

    # Exception handlers
    @app.exception_handler(CoffeeSentinelError)
    async def sentinel_exception_handler(request: Request, exc: CoffeeSentinelError):
        status_map = {
            ConfigError: 400,
            FetchError: 502,
        }
        status = status_map.get(type(exc), 500)
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status, content=ErrorResponse(error=str(exc)).model_dump()
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("%s %s crashed", request.method, request.url.path)
        return JSONResponse(
            status_code=500, content=ErrorResponse(error=str(exc)).model_dump()
        )

    return app


def _version() -> str:
    import coffee_sentinel

    return coffee_sentinel.__version__

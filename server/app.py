"""FastAPI application factory."""

import asyncio
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.config import Config
from server.dependencies import get_coordinator
from server.routes import cache, deep_search, health, search
from server.utils import error_response
from utils.logger import get_logger

logger = get_logger(__name__)


async def _sweep_cache_periodically(app: FastAPI, interval_s: float) -> None:
    """Remove expired cache entries every ``interval_s`` seconds."""
    loop = asyncio.get_running_loop()
    while True:
        await asyncio.sleep(interval_s)
        coordinator = app.dependency_overrides.get(get_coordinator, get_coordinator)()
        await loop.run_in_executor(None, coordinator.cache.sweep)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown logic."""
    logger.info("FastAPI server starting up")

    required_keys = ["API_KEYS"]
    missing = [k for k in required_keys if not os.getenv(k)]
    if missing:
        logger.warning(f"Missing environment variables: {missing}")

    sweep_task = None
    interval_s = Config().CACHE_SWEEP_INTERVAL_SECONDS
    if interval_s > 0:
        sweep_task = asyncio.create_task(_sweep_cache_periodically(app, interval_s))
        logger.info(f"Cache sweep scheduled every {interval_s}s")

    yield

    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
    logger.info("FastAPI server shutting down")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request: {field} {first.get('msg', '')}".strip() if field else "Invalid request body"
    logger.info(message, extra={"extra_fields": {"path": request.url.path}})
    return error_response(status.HTTP_400_BAD_REQUEST, message)


def create_app() -> FastAPI:
    """Factory function to create FastAPI application."""
    app = FastAPI(
        title="Deep Search API",
        description="Question answering over live web search results",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(health.router)
    app.include_router(deep_search.router)
    app.include_router(search.router)
    app.include_router(cache.router)

    return app

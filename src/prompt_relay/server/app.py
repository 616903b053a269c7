"""FastAPI application factory."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from prompt_relay import __version__
from prompt_relay.engine.admission import DuplicateAnsweredError, InvalidTaskError
from prompt_relay.engine.repository import StoreError, TaskConflictError
from prompt_relay.engine.runtime import RelayRuntime
from prompt_relay.server.routes import error_response, health_router, tasks_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start workers and recover pending tasks before serving requests."""

    runtime: RelayRuntime = app.state.runtime
    summary = await asyncio.to_thread(runtime.start)
    logger.info(
        "Relay ready: workers=%d queue_capacity=%d recovered=%d deferred=%d",
        runtime.pool.size,
        runtime.task_queue.capacity,
        summary.recovered,
        summary.deferred,
    )
    try:
        yield
    finally:
        await asyncio.to_thread(runtime.close)
        logger.info("Relay stopped")


def create_app(runtime: RelayRuntime) -> FastAPI:
    """Build the HTTP app around an already-wired runtime.

    The app owns the runtime from here on: it is started by the lifespan hook
    and closed on shutdown.
    """

    app = FastAPI(
        title="prompt-relay",
        version=__version__,
        description="Durable prompt task queue",
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    app.include_router(tasks_router)
    app.include_router(health_router)
    _register_error_handlers(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _invalid_request(_: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, _validation_message(exc))

    @app.exception_handler(InvalidTaskError)
    async def _invalid_task(_: Request, exc: InvalidTaskError) -> JSONResponse:
        return error_response(400, str(exc))

    @app.exception_handler(DuplicateAnsweredError)
    async def _duplicate(_: Request, exc: DuplicateAnsweredError) -> JSONResponse:
        return error_response(400, "This item already has a response")

    @app.exception_handler(TaskConflictError)
    async def _conflict(_: Request, exc: TaskConflictError) -> JSONResponse:
        return error_response(409, str(exc))

    @app.exception_handler(StoreError)
    async def _store_failure(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        return error_response(500, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )


def _validation_message(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request body"

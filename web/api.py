"""FastAPI web application for the debate arena."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from debate_engine.exceptions import (
    ConcurrencyError,
    DebateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from web.debate_manager import DebateManager
from web.endpoints.debates import router as debates_router, ws_router as debates_ws_router
from web.endpoints.system import router as system_router

logger: logging.Logger = logging.getLogger(__name__)

ERROR_STATUS: list[tuple[type[DebateError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConcurrencyError, 409),
    (PersistenceError, 500),
]


def status_for(error: DebateError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def get_allowed_origins() -> list[str] | None:
    """Get CORS origins from environment or use development defaults."""
    env_origins: str | None = os.environ.get("ALLOWED_ORIGINS")
    if env_origins:
        origins = [origin.strip() for origin in env_origins.split(",")]
        return origins
    return None


def create_app(manager: DebateManager | None = None) -> FastAPI:
    """Build the application around ``manager`` (or one built from config)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if getattr(app.state, "debate_manager", None) is None:
            app.state.debate_manager = DebateManager.from_config()
        yield
        logger.info("Shutting down debate manager")
        await app.state.debate_manager.shutdown()

    app = FastAPI(
        title="Debate Arena",
        description="Multi-round AI debates with a judge and an audience",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.debate_manager = manager

    allowed_origins = get_allowed_origins()
    if allowed_origins:
        logger.info(f"Setting CORS allowed origins: {allowed_origins}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        # Development: Allow any localhost/127.0.0.1
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(DebateError)
    async def debate_error_handler(_: Request, exc: DebateError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error(f"{type(exc).__name__}: {exc}")
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    app.include_router(system_router, prefix="/v1")
    app.include_router(debates_router, prefix="/v1")
    app.include_router(debates_ws_router, prefix="/v1")
    return app


app: FastAPI = create_app()

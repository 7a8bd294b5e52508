"""Application factory for the Forge AI FastAPI backend."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ForgeSettings, get_settings
from .conversations import LocalStorage
from .db import Database
from .errors import (
    ComposerUnavailableError,
    GatewayError,
    InvalidTransitionError,
    composer_unavailable_handler,
    gateway_error_handler,
    http_exception_handler,
    invalid_transition_handler,
    validation_exception_handler,
)
from .logging import get_logger, setup_logging
from .routers import auth, conversations, forge
from .sessions import SessionRegistry
from .workspace import WorkspaceRegistry

logger = get_logger(__name__)


def _open_database(settings: ForgeSettings) -> Database | None:
    if not settings.has_database:
        logger.warning("database not configured, account features disabled")
        return None
    database = Database(settings.database_url)
    database.create_all()
    return database


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.sessions.clear()
    app.state.workspaces.clear()
    if app.state.database is not None:
        app.state.database.dispose()


def create_app(
    settings: ForgeSettings | None = None,
    gateway=None,
    database: Database | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    ``gateway`` and ``database`` override what ``settings`` would build,
    which is how tests run without network or a real database.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.json_logs)

    app = FastAPI(
        title="Forge AI Backend",
        version="0.1.0",
        description="Founder co-pilot: problem analysis, opportunity discovery and action plans.",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_origin_regex=r"http://localhost:\d+$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.gateway = gateway
    app.state.database = database if database is not None else _open_database(settings)
    app.state.sessions = SessionRegistry()
    app.state.workspaces = WorkspaceRegistry(LocalStorage(settings.storage_dir))

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(ComposerUnavailableError, composer_unavailable_handler)
    app.add_exception_handler(InvalidTransitionError, invalid_transition_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(forge.router)
    app.include_router(auth.router)
    app.include_router(conversations.router)
    return app


app = create_app()

"""
FastAPI application entry point
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import __version__
from core.editor import EditorLauncher
from core.models import Configuration
from core.users import UserRepository
from backend.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Workspace API starting for {app.state.workspace_root}")
    yield
    # Shutdown
    logger.info("Workspace API shutting down...")


def create_app(
    config: Configuration,
    workspace_root: str,
    users: Optional[UserRepository] = None,
    editor: Optional[EditorLauncher] = None,
) -> FastAPI:
    """
    Create the application for a configuration snapshot.

    Args:
        config: Configuration snapshot, treated as read-only
        workspace_root: Directory exposed under /api/workspace
        users: User repository; a new one is created if omitted
        editor: Editor launcher for POST on files
    """
    app = FastAPI(
        title="Workspace REST API",
        description="Browse a workspace over HTTP",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.config = config
    app.state.workspace_root = workspace_root
    app.state.editor = editor or EditorLauncher(config.editor)
    app.state.dispatcher = Dispatcher(config, users or UserRepository(config, workspace_root))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Log unhandled exceptions; the client only gets a generic error."""
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc
        )
        return JSONResponse(
            status_code=500, content={"code": 500, "msg": "Internal Server Error"}
        )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.api_route("/{path:path}", methods=HTTP_METHODS, include_in_schema=False)
    async def dispatch(request: Request):
        """Every request goes through the dispatcher."""
        return await request.app.state.dispatcher.handle(request)

    return app

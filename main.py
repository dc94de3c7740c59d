#!/usr/bin/env python3

"""
Main application entry point for the VideoTube backend API.

Architecture: FastAPI application with an async database, JWT cookie/header auth
and a hosted media store.
Key Features: Lifecycle management, database health checks, error envelope, CORS configuration.
"""

import asyncio
import sys

# Add this block to switch asyncio event loop policy on Windows
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from videotube.api import health_router, users_router, videos_router
from videotube.config import Settings, settings
from videotube.db import (
    check_db_connection,
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from videotube.errors import register_exception_handlers
from videotube.services.media_storage import MediaStorage
from videotube.utils.auth import PasswordHasher, TokenService
from videotube.utils.logger import setup_logger

logger = setup_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the database engine, make sure the schema exists and verify connectivity.
    """
    logger.info("Application startup...")
    app_settings: Settings = app.state.settings
    try:
        if getattr(app.state, "engine", None) is None:
            app.state.engine = create_engine_from_settings(app_settings)
            app.state.session_factory = create_session_factory(app.state.engine)

        logger.info("Initializing database...")
        await init_db(app.state.engine)
        logger.info("Database initialization complete.")

        logger.info("Checking database connectivity...")
        await check_db_connection(app.state.engine)
        logger.info("Database connectivity confirmed.")

    except Exception as e:
        logger.critical(f"Startup error: {e}")
        raise SystemExit(f"Startup failed: {e}") from e

    logger.info("VideoTube API startup successful.")

    yield

    logger.info("VideoTube API shutdown...")
    await app.state.media_storage.aclose()
    await app.state.engine.dispose()
    logger.info("Shutdown complete.")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings
    app = FastAPI(title="VideoTube API", lifespan=lifespan)

    app.state.settings = app_settings
    app.state.password_hasher = PasswordHasher(rounds=app_settings.bcrypt_rounds)
    app.state.token_service = TokenService.from_settings(app_settings)
    app.state.media_storage = MediaStorage.from_settings(app_settings)
    app.state.engine = None
    app.state.session_factory = None

    register_exception_handlers(app)

    app.include_router(health_router, prefix=app_settings.api_prefix)
    app.include_router(users_router, prefix=app_settings.api_prefix)
    app.include_router(videos_router, prefix=app_settings.api_prefix)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_allow_origins,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=app_settings.cors_allow_methods,
        allow_headers=app_settings.cors_allow_headers,
    )

    return app


app = create_app()


def server_target(app_settings: Settings):
    """uvicorn can only fork workers from an import string."""
    if app_settings.server_workers > 1:
        return "main:app"
    return app


def main():
    """
    Start the FastAPI application with uvicorn.
    """
    port = int(settings.server_port)
    host = settings.server_host
    workers = settings.server_workers

    logger.info(f"Starting VideoTube API server on {host}:{port} with {workers} worker(s)")

    try:
        uvicorn.run(server_target(settings), host=host, port=port, workers=workers)
    except SystemExit as e:
        logger.error(f"uvicorn exited during startup with code {e.code}")
        raise
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

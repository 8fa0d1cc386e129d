"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware and logging
- Own the process-wide SessionController (one tally per process)
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig
from observability import logger
from session.controller import SessionController, build_controller

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    controller: SessionController | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with a fake-device controller
    - Environment-specific setup
    - ASGI server compatibility
    """
    config = config or AppConfig.load_from_env()
    logger.configure(log_level=config.log_level, json_lines=config.enable_json_logs)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        # Process exit releases the microphone, speaker and socket
        await app.state.controller.shutdown()

    app = FastAPI(title="Live Keyword Counter API", lifespan=lifespan)

    app.state.config = config
    app.state.controller = controller or build_controller(config)

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app

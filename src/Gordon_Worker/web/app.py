"""FastAPI app factory for the status surface.

The app is a thin reader over an Engine: the lifespan starts the engine's
job loops with the server and stops them on shutdown.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from Gordon_Worker.engine import Engine
from Gordon_Worker.web.middleware import RequestLoggingMiddleware, register_exception_handlers
from Gordon_Worker.web.routes import status_router, tenants_router

logger = logging.getLogger(__name__)


def create_app(engine: Engine, *, manage_engine: bool = True) -> FastAPI:
    """Create the FastAPI application bound to ``engine``.

    Args:
        engine: The engine whose status is served.
        manage_engine: When True the lifespan starts and stops the engine.
            Pass False when the caller owns the engine's lifecycle.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if manage_engine:
            await engine.start()
        try:
            yield
        finally:
            if manage_engine:
                await engine.stop()

    app = FastAPI(title="Gordon Worker", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.engine = engine

    app.include_router(status_router)
    app.include_router(tenants_router)

    register_exception_handlers(app)
    app.add_middleware(RequestLoggingMiddleware)

    logger.info("Gordon Worker status app created")
    return app

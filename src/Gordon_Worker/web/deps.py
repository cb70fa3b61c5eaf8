"""Dependency injection providers for FastAPI route handlers.

The Engine is created before the app and stored in ``app.state.engine``.
Route handlers declare what they need and FastAPI injects it.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request

from Gordon_Worker.data.repository import Repository
from Gordon_Worker.engine import Engine
from Gordon_Worker.services.representative import RepresentativeSelector

logger = logging.getLogger(__name__)


async def get_engine(request: Request) -> Engine:
    """Return the Engine bound to this application."""
    engine: Engine = request.app.state.engine
    return engine


async def get_repository(engine: Annotated[Engine, Depends(get_engine)]) -> Repository:
    """Return the engine's Repository."""
    return engine.repository


async def get_selector(engine: Annotated[Engine, Depends(get_engine)]) -> RepresentativeSelector:
    """Return a selector using the engine's configured policy."""
    return RepresentativeSelector(engine.repository, engine.config.representative_policy)

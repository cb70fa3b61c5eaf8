"""Status routes: the process-wide health snapshot as JSON."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from Gordon_Worker.engine import Engine
from Gordon_Worker.models.status import StatusSnapshot
from Gordon_Worker.web.deps import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe for the HTTP process itself."""
    return {"status": "ok"}


@router.get("/status", response_model=StatusSnapshot)
async def get_status(engine: Annotated[Engine, Depends(get_engine)]) -> StatusSnapshot:
    """Return the latest connectivity snapshot."""
    return engine.status()

"""Tenant routes: directory listing and per-tenant schedule state."""

import datetime
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from Gordon_Worker.data.repository import Repository
from Gordon_Worker.models.enums import JobName
from Gordon_Worker.models.tenant import Tenant
from Gordon_Worker.services.representative import RepresentativeSelector
from Gordon_Worker.web.deps import get_repository, get_selector

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tenants")


class TenantDirectory(BaseModel):
    """All tenants plus the representative the policy would pick right now."""

    tenants: list[Tenant]
    representative_tenant_id: int | None


@router.get("", response_model=TenantDirectory)
async def list_tenants(
    repository: Annotated[Repository, Depends(get_repository)],
    selector: Annotated[RepresentativeSelector, Depends(get_selector)],
) -> TenantDirectory:
    """List tenants and the current representative."""
    tenants = await repository.list_tenants()
    return TenantDirectory(tenants=tenants, representative_tenant_id=await selector.select())


@router.get("/{tenant_id}/schedule")
async def get_schedule(
    tenant_id: int,
    repository: Annotated[Repository, Depends(get_repository)],
) -> dict[str, datetime.datetime | None]:
    """Return when each job last serviced the tenant."""
    if await repository.get_tenant(tenant_id) is None:
        raise HTTPException(status_code=404, detail=f"Tenant {tenant_id} not found")
    return {str(job): await repository.get_schedule_state(tenant_id, job) for job in JobName}

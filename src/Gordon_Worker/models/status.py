"""Status models: the process-wide health snapshot and individual probe results."""

import datetime

from pydantic import BaseModel, ConfigDict


class ProbeResult(BaseModel):
    """Outcome of one connectivity probe against an external collaborator."""

    model_config = ConfigDict(frozen=True)

    online: bool
    error: str | None = None


class RepresentativeResult(BaseModel):
    """Probe outcomes gathered from the representative tenant during one cycle.

    A ``None`` field means that check was skipped for the representative
    (no credentials, fallback disabled) and must leave the snapshot untouched.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: int
    banking: ProbeResult | None = None
    ai_primary: ProbeResult | None = None
    ai_fallback: ProbeResult | None = None


class StatusSnapshot(BaseModel):
    """Point-in-time copy of system health, read by status consumers.

    Produced by ``StatusAggregator.snapshot()``; the aggregator owns the
    mutable state, consumers only ever see frozen copies.
    """

    model_config = ConfigDict(frozen=True)

    database_online: bool = True
    primary_external_api_online: bool = False
    ai_primary_online: bool = False
    ai_fallback_online: bool = False
    last_external_api_check: datetime.datetime | None = None
    last_ai_check: datetime.datetime | None = None
    last_error: str | None = None
    primary_ai_error: str | None = None
    fallback_ai_error: str | None = None
    representative_tenant_id: int | None = None
    last_cycle_at: datetime.datetime | None = None

"""Cycle models: per-tenant settled outcomes and the summary of one job cycle."""

import datetime

from pydantic import BaseModel, ConfigDict, computed_field

from Gordon_Worker.models.enums import JobName, OutcomeStatus


class TenantOutcome(BaseModel):
    """How one tenant's unit of work settled within a cycle."""

    model_config = ConfigDict(frozen=True)

    tenant_id: int
    job: JobName
    status: OutcomeStatus
    detail: str | None = None


class CycleReport(BaseModel):
    """Summary of one complete pass of a job across all eligible tenants.

    ``aborted`` is set when the cycle stopped before fan-out (e.g., the
    database was unreachable); ``outcomes`` is then empty.
    """

    model_config = ConfigDict(frozen=True)

    job: JobName
    started_at: datetime.datetime
    completed_at: datetime.datetime
    outcomes: list[TenantOutcome] = []
    aborted: bool = False
    abort_reason: str | None = None

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def succeeded(self) -> int:
        """Number of tenants whose work completed."""
        return self._count(OutcomeStatus.SUCCEEDED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skipped(self) -> int:
        """Number of tenants skipped by a skip condition."""
        return self._count(OutcomeStatus.SKIPPED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        """Number of tenants whose work raised."""
        return self._count(OutcomeStatus.FAILED)

    def outcome_for(self, tenant_id: int) -> TenantOutcome | None:
        """Return the outcome recorded for ``tenant_id``, if it was part of the cycle."""
        for outcome in self.outcomes:
            if outcome.tenant_id == tenant_id:
                return outcome
        return None

"""Per-tenant task runner: bounded fan-out with failure isolation.

Every tenant's unit of work runs inside its own failure boundary. An error
raised for tenant T is caught at T's boundary, logged with T's id and the
job name, and recorded as a ``failed`` outcome; siblings keep running. The
fan-out returns only after every tenant task has settled (wait-for-all).

Resource isolation is the work function's responsibility: it must build any
stateful client it needs from a factory *inside* the call, so no instance
configured for one tenant is visible to a concurrently running sibling.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from Gordon_Worker.logging_config import log_context
from Gordon_Worker.models.enums import JobName, OutcomeStatus
from Gordon_Worker.models.outcome import TenantOutcome
from Gordon_Worker.services.limiter import ConcurrencyLimiter
from Gordon_Worker.utils.exceptions import TenantSkipped

logger = logging.getLogger(__name__)

# A unit of work for one tenant. Returns an optional detail string for the
# outcome; raises TenantSkipped for skip conditions.
TenantWork = Callable[[int], Awaitable[str | None]]


class TenantTaskRunner:
    """Run one job's unit of work across tenants.

    Usage::

        runner = TenantTaskRunner(JobName.TRANSACTIONS, limiter=ConcurrencyLimiter(5))
        outcomes = await runner.run_all(tenant_ids, sync_one_tenant)

    When ``limiter`` is None the fan-out is unbounded.
    """

    def __init__(self, job: JobName, *, limiter: ConcurrencyLimiter | None = None) -> None:
        self._job = job
        self._limiter = limiter

    @property
    def job(self) -> JobName:
        """Job name used to tag outcomes and log lines."""
        return self._job

    async def run_one(self, tenant_id: int, work: TenantWork) -> TenantOutcome:
        """Run ``work`` for one tenant and settle it into an outcome. Never raises ``Exception``."""
        with log_context(job=self._job, tenant_id=tenant_id):
            return await self._settle(tenant_id, work)

    async def _settle(self, tenant_id: int, work: TenantWork) -> TenantOutcome:
        try:
            if self._limiter is None:
                detail = await work(tenant_id)
            else:
                async with self._limiter.slot():
                    detail = await work(tenant_id)
        except TenantSkipped as skip:
            logger.info("[%s] Tenant %d skipped: %s", self._job, tenant_id, skip.reason)
            return TenantOutcome(
                tenant_id=tenant_id,
                job=self._job,
                status=OutcomeStatus.SKIPPED,
                detail=skip.reason,
            )
        except Exception as exc:
            logger.error(
                "[%s] Tenant %d failed: %s",
                self._job,
                tenant_id,
                exc,
                exc_info=True,
            )
            return TenantOutcome(
                tenant_id=tenant_id,
                job=self._job,
                status=OutcomeStatus.FAILED,
                detail=str(exc) or type(exc).__name__,
            )

        return TenantOutcome(
            tenant_id=tenant_id,
            job=self._job,
            status=OutcomeStatus.SUCCEEDED,
            detail=detail,
        )

    async def run_all(self, tenant_ids: Iterable[int], work: TenantWork) -> list[TenantOutcome]:
        """Fan ``work`` out across ``tenant_ids`` and wait for every task to settle.

        Uses ``asyncio.gather(..., return_exceptions=True)`` so that a task
        cancelled on its own (rather than through this call) still yields an
        outcome instead of aborting the batch.

        Returns:
            One outcome per tenant, in the order of ``tenant_ids``.
        """
        ids = list(tenant_ids)
        if not ids:
            return []

        results: list[TenantOutcome | BaseException] = await asyncio.gather(
            *(self.run_one(tenant_id, work) for tenant_id in ids),
            return_exceptions=True,
        )

        outcomes: list[TenantOutcome] = []
        for tenant_id, result in zip(ids, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("[%s] Tenant %d task ended abnormally: %r", self._job, tenant_id, result)
                outcomes.append(
                    TenantOutcome(
                        tenant_id=tenant_id,
                        job=self._job,
                        status=OutcomeStatus.FAILED,
                        detail=repr(result),
                    )
                )
            else:
                outcomes.append(result)

        failed = sum(1 for outcome in outcomes if outcome.status == OutcomeStatus.FAILED)
        skipped = sum(1 for outcome in outcomes if outcome.status == OutcomeStatus.SKIPPED)
        logger.info(
            "[%s] Fan-out settled: %d tenants, %d succeeded, %d skipped, %d failed",
            self._job,
            len(outcomes),
            len(outcomes) - failed - skipped,
            skipped,
            failed,
        )
        return outcomes

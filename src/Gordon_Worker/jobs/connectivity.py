"""Connectivity job: probe the database, the banking API and the AI providers.

One cycle runs ``CheckDatabase -> SelectRepresentative -> EnumerateTenants
-> FanOutBounded -> AggregateRepresentativeResult``. An unreachable database
aborts the cycle after recording it. Every configured tenant is probed (the
banking probe keeps sessions warm), but only the representative's results
reach the status aggregator, and they are applied once after the fan-out has
settled.

AI probes cost quota on hosted providers, so they run for every tenant only
when the provider is listed in ``free_ai_providers``; otherwise only for the
representative.
"""

from __future__ import annotations

import logging

from Gordon_Worker.jobs.base import Job, JobContext
from Gordon_Worker.models.enums import AiProvider, JobName
from Gordon_Worker.models.outcome import CycleReport
from Gordon_Worker.models.status import ProbeResult, RepresentativeResult
from Gordon_Worker.services.health import ConnectivityProbes
from Gordon_Worker.services.representative import RepresentativeSelector
from Gordon_Worker.services.scheduler import IntervalTrigger
from Gordon_Worker.utils.exceptions import TenantSkipped

logger = logging.getLogger(__name__)


def _describe(probe: ProbeResult | None) -> str:
    if probe is None:
        return "skipped"
    return "online" if probe.online else "offline"


class ConnectivityJob(Job):
    """Five-minute health cycle feeding the process-wide status snapshot."""

    name = JobName.CONNECTIVITY

    def __init__(self, context: JobContext) -> None:
        super().__init__(context)
        self._probes = ConnectivityProbes(context.database)
        self._selector = RepresentativeSelector(
            context.repository,
            context.config.representative_policy,
        )
        self._free_providers: frozenset[AiProvider] = frozenset(context.config.free_ai_providers)

    def build_trigger(self) -> IntervalTrigger:
        return IntervalTrigger(self._context.config.connectivity_interval_seconds)

    async def run_cycle(self) -> CycleReport:
        started_at = self.now()
        status = self._context.status

        online, error = await self._probes.check_database()
        await status.record_database_status(online, error=error)
        if not online:
            logger.error("Connectivity cycle aborted: database unreachable (%s).", error)
            return CycleReport(
                job=self.name,
                started_at=started_at,
                completed_at=self.now(),
                aborted=True,
                abort_reason=error or "database unreachable",
            )

        representative_id = await self._selector.select()
        if representative_id is None:
            logger.info("No representative tenant; external API and AI status checks skipped.")

        tenant_ids = await self._context.repository.list_configured_tenant_ids()
        if not tenant_ids:
            logger.info("Connectivity check skipped: no tenants with settings.")

        collected: dict[int, RepresentativeResult] = {}

        async def probe_tenant(tenant_id: int) -> str | None:
            result = await self._probe_tenant(tenant_id, representative_id)
            if tenant_id == representative_id:
                collected[tenant_id] = result
            if result.banking is None and result.ai_primary is None and result.ai_fallback is None:
                raise TenantSkipped("no applicable checks", tenant_id=tenant_id, job=self.name)
            return (
                f"banking={_describe(result.banking)} "
                f"ai_primary={_describe(result.ai_primary)} "
                f"ai_fallback={_describe(result.ai_fallback)}"
            )

        outcomes = await self._runner.run_all(tenant_ids, probe_tenant)

        if representative_id is not None:
            representative_result = collected.get(representative_id)
            if representative_result is not None:
                await status.apply_representative_result(representative_result, checked_at=self.now())
            else:
                logger.warning(
                    "Representative tenant %d produced no result this cycle; status left unchanged.",
                    representative_id,
                )

        report = self.finish(started_at, outcomes)
        await status.mark_cycle_completed(report.completed_at)
        return report

    async def _probe_tenant(self, tenant_id: int, representative_id: int | None) -> RepresentativeResult:
        """Run the probes that apply to one tenant."""
        settings = await self.load_settings(tenant_id)
        is_representative = tenant_id == representative_id

        banking: ProbeResult | None = None
        if not settings.banking.is_blank:
            async with self._context.banking_factory() as client:
                client.configure(settings.banking)
                banking = await self._probes.probe_banking(client, tenant_id=tenant_id)

        ai_primary: ProbeResult | None = None
        if is_representative or settings.ai.provider in self._free_providers:
            ai_primary = await self._probes.probe_ai(
                self._context.ai_client,
                tenant_id=tenant_id,
                use_fallback=False,
            )

        ai_fallback: ProbeResult | None = None
        if settings.ai.enable_fallback and (
            is_representative or settings.ai.fallback_provider in self._free_providers
        ):
            ai_fallback = await self._probes.probe_ai(
                self._context.ai_client,
                tenant_id=tenant_id,
                use_fallback=True,
            )

        return RepresentativeResult(
            tenant_id=tenant_id,
            banking=banking,
            ai_primary=ai_primary,
            ai_fallback=ai_fallback,
        )

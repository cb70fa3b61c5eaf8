"""Weekly report job: poll, and send each tenant's report inside its own slot.

Every poll checks each tenant's target weekday and hour. A tenant is sent at
most one report per calendar day; the send time is persisted in schedule
state immediately after the report goes out, so restarts and later polls in
the same hour do not send it again.
"""

from __future__ import annotations

import datetime
import logging

from Gordon_Worker.jobs.base import Job
from Gordon_Worker.models.enums import JobName
from Gordon_Worker.models.outcome import CycleReport
from Gordon_Worker.services.scheduler import IntervalTrigger, is_weekly_due, serviced_today
from Gordon_Worker.utils.exceptions import TenantSkipped

logger = logging.getLogger(__name__)


class WeeklyReportJob(Job):
    """Five-minute poll against per-tenant weekly targets."""

    name = JobName.WEEKLY_REPORT

    def build_trigger(self) -> IntervalTrigger:
        return IntervalTrigger(self._context.config.weekly_poll_seconds)

    async def run_cycle(self) -> CycleReport:
        started_at = self.now()
        repository = self._context.repository
        tenant_ids = sorted(await repository.list_tenant_ids())
        last_sent = await repository.get_schedule_states(self.name)

        async def report_tenant(tenant_id: int) -> str | None:
            return await self.process_tenant(tenant_id, started_at, last_sent.get(tenant_id))

        outcomes = await self._runner.run_all(tenant_ids, report_tenant)
        return self.finish(started_at, outcomes)

    async def process_tenant(
        self,
        tenant_id: int,
        now: datetime.datetime,
        last_sent: datetime.datetime | None,
    ) -> str | None:
        """Send the tenant's report if ``now`` is inside its weekly slot."""
        if serviced_today(last_sent, now):
            raise TenantSkipped("already sent today", tenant_id=tenant_id, job=self.name)

        settings = await self.load_settings(tenant_id)
        if not is_weekly_due(now, settings.report_day_of_week, settings.report_hour, last_sent):
            raise TenantSkipped("not due", tenant_id=tenant_id, job=self.name)

        delivered = await self._context.reports.generate_and_send(tenant_id)
        await self._context.repository.set_schedule_state(tenant_id, self.name, now)
        logger.info("Weekly report processed for tenant %d (delivered=%s).", tenant_id, delivered)
        return "delivered" if delivered else "not delivered"

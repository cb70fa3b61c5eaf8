"""Shared plumbing for the recurring jobs.

A job owns a trigger, a concurrency limiter and a tenant task runner. Its
``run_cycle()`` performs one complete pass across tenants and returns a
CycleReport; the engine drives it through ``run_job_loop``.
"""

from __future__ import annotations

import datetime
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

from Gordon_Worker.clients.ai import AiClient
from Gordon_Worker.clients.investec import InvestecClient
from Gordon_Worker.clients.telegram import TelegramNotifier
from Gordon_Worker.config import EngineConfig
from Gordon_Worker.data.database import Database
from Gordon_Worker.data.repository import Repository
from Gordon_Worker.data.settings_store import SettingsStore
from Gordon_Worker.models.enums import JobName
from Gordon_Worker.models.outcome import CycleReport, TenantOutcome
from Gordon_Worker.models.tenant import TenantSettings
from Gordon_Worker.services.fanout import TenantTaskRunner
from Gordon_Worker.services.limiter import ConcurrencyLimiter
from Gordon_Worker.services.reports import ReportGenerator
from Gordon_Worker.services.scheduler import Clock, Trigger
from Gordon_Worker.services.status import StatusAggregator
from Gordon_Worker.utils.exceptions import SettingsNotFoundError, TenantSkipped

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobContext:
    """Collaborators shared by every job.

    ``banking_factory`` is called once per tenant task so that no banking
    client configured for one tenant is ever visible to another.
    """

    config: EngineConfig
    database: Database
    repository: Repository
    settings_store: SettingsStore
    status: StatusAggregator
    ai_client: AiClient
    notifier: TelegramNotifier
    reports: ReportGenerator
    clock: Clock
    banking_factory: Callable[[], InvestecClient] = InvestecClient.factory


class Job(ABC):
    """One recurring job: a trigger plus a bounded fan-out across tenants."""

    name: ClassVar[JobName]

    def __init__(self, context: JobContext) -> None:
        self._context = context
        self._limiter = ConcurrencyLimiter(
            context.config.max_concurrent_tenants,
            name=str(self.name),
        )
        self._runner = TenantTaskRunner(self.name, limiter=self._limiter)

    @property
    def limiter(self) -> ConcurrencyLimiter:
        return self._limiter

    @abstractmethod
    def build_trigger(self) -> Trigger:
        """Return a fresh trigger for this job's loop."""

    @abstractmethod
    async def run_cycle(self) -> CycleReport:
        """Run one complete pass across tenants."""

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def now(self) -> datetime.datetime:
        return self._context.clock()

    async def load_settings(self, tenant_id: int) -> TenantSettings:
        """Return the tenant's settings, turning a missing document into a skip."""
        try:
            return await self._context.settings_store.get_settings(tenant_id)
        except SettingsNotFoundError as exc:
            raise TenantSkipped("no settings", tenant_id=tenant_id, job=self.name) from exc

    def finish(
        self,
        started_at: datetime.datetime,
        outcomes: list[TenantOutcome],
    ) -> CycleReport:
        """Build the cycle report and log its one-line summary."""
        report = CycleReport(
            job=self.name,
            started_at=started_at,
            completed_at=self.now(),
            outcomes=outcomes,
        )
        logger.info(
            "[%s] Cycle complete: %d succeeded, %d skipped, %d failed in %.1fs",
            self.name,
            report.succeeded,
            report.skipped,
            report.failed,
            (report.completed_at - report.started_at).total_seconds(),
        )
        return report

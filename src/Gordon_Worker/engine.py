"""Engine: wires collaborators together and runs one loop per enabled job.

All loops run in a single ``asyncio.TaskGroup`` and share one shutdown
event. ``stop()`` sets the event, gives in-flight cycles
``shutdown_grace_seconds`` to settle, then cancels whatever is left so
shutdown never blocks indefinitely.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import logging
from collections.abc import Callable
from zoneinfo import ZoneInfo

from Gordon_Worker.clients.ai import AiClient
from Gordon_Worker.clients.investec import InvestecClient
from Gordon_Worker.clients.telegram import TelegramNotifier
from Gordon_Worker.config import EngineConfig
from Gordon_Worker.data.database import Database
from Gordon_Worker.data.repository import Repository
from Gordon_Worker.data.settings_store import SettingsStore
from Gordon_Worker.jobs import (
    ConnectivityJob,
    DailyBriefingJob,
    Job,
    JobContext,
    TransactionsJob,
    WeeklyReportJob,
)
from Gordon_Worker.models.enums import JobName
from Gordon_Worker.models.outcome import CycleReport
from Gordon_Worker.models.status import StatusSnapshot
from Gordon_Worker.services.reports import ReportGenerator
from Gordon_Worker.services.scheduler import Clock, run_job_loop
from Gordon_Worker.services.status import StatusAggregator

logger = logging.getLogger(__name__)

JOB_TYPES: dict[JobName, type[Job]] = {
    JobName.CONNECTIVITY: ConnectivityJob,
    JobName.TRANSACTIONS: TransactionsJob,
    JobName.WEEKLY_REPORT: WeeklyReportJob,
    JobName.DAILY_BRIEFING: DailyBriefingJob,
}


def zoned_clock(timezone: str) -> Clock:
    """Return a clock producing aware datetimes in ``timezone``."""
    zone = ZoneInfo(timezone)
    return lambda: datetime.datetime.now(zone)


class Engine:
    """The multi-tenant job engine.

    Usage::

        engine = Engine(load_config())
        await engine.start()
        ...
        await engine.stop()
    """

    def __init__(
        self,
        config: EngineConfig,
        *,
        database: Database | None = None,
        ai_client: AiClient | None = None,
        notifier: TelegramNotifier | None = None,
        banking_factory: Callable[[], InvestecClient] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config
        self._database = database or Database(config.db_path)
        self._repository = Repository(self._database)
        self._settings_store = SettingsStore(self._database)
        self._status = StatusAggregator()
        self._ai_client = ai_client or AiClient(self._settings_store)
        self._notifier = notifier or TelegramNotifier(self._settings_store)
        self._clock = clock or zoned_clock(config.timezone)
        self._shutdown = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

        context = JobContext(
            config=config,
            database=self._database,
            repository=self._repository,
            settings_store=self._settings_store,
            status=self._status,
            ai_client=self._ai_client,
            notifier=self._notifier,
            reports=ReportGenerator(
                self._repository,
                self._settings_store,
                self._notifier,
                self._ai_client,
                clock=self._clock,
            ),
            clock=self._clock,
            banking_factory=banking_factory or InvestecClient.factory,
        )
        self._jobs: dict[JobName, Job] = {name: job_type(context) for name, job_type in JOB_TYPES.items()}

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def database(self) -> Database:
        return self._database

    @property
    def repository(self) -> Repository:
        return self._repository

    @property
    def settings_store(self) -> SettingsStore:
        return self._settings_store

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def job(self, name: JobName) -> Job:
        return self._jobs[name]

    def status(self) -> StatusSnapshot:
        """Return the current status snapshot."""
        return self._status.snapshot()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the database and launch the enabled job loops in the background."""
        if self.is_running:
            return
        await self._database.connect()
        self._shutdown.clear()
        self._task = asyncio.create_task(self._run_loops(), name="gordon-engine")
        logger.info(
            "Engine started: jobs=%s, max_concurrent_tenants=%d, timezone=%s",
            [str(name) for name in self._config.enabled_jobs],
            self._config.max_concurrent_tenants,
            self._config.timezone,
        )

    async def wait(self) -> None:
        """Block until the job loops have finished."""
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def stop(self) -> None:
        """Signal shutdown, wait up to the grace period, then cancel and release resources."""
        self._shutdown.set()
        task = self._task
        if task is not None and not task.done():
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=self._config.shutdown_grace_seconds)
            except TimeoutError:
                logger.warning(
                    "Job loops still busy after %.0fs; cancelling in-flight cycles.",
                    self._config.shutdown_grace_seconds,
                )
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._task = None

        await self._ai_client.aclose()
        await self._notifier.aclose()
        await self._database.close()
        logger.info("Engine stopped.")

    async def run_once(self, name: JobName) -> CycleReport:
        """Run a single cycle of one job outside its trigger (used by the CLI)."""
        return await self._jobs[name].run_cycle()

    async def _run_loops(self) -> None:
        async with asyncio.TaskGroup() as group:
            for name in self._config.enabled_jobs:
                job = self._jobs[name]
                group.create_task(
                    run_job_loop(
                        str(name),
                        job.build_trigger(),
                        job.run_cycle,
                        self._shutdown,
                        backoff_seconds=self._config.loop_backoff_seconds,
                    ),
                    name=f"job-{name}",
                )

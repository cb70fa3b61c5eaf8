"""Trigger scheduling: when each job runs, and the loop that runs it.

Wall-clock decisions are pure functions of ``now`` (``next_daily_trigger``,
``serviced_today``, ``is_weekly_due``) so they can be tested without
sleeping. Triggers only sleep; the job loop only calls triggers and jobs.

Every wait observes the shutdown event and returns early when it is set.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Final

from Gordon_Worker.logging_config import log_context
from Gordon_Worker.models.enums import Weekday

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Long sleeps are split so a wall-clock jump (suspend, NTP step) is noticed
MAX_SLEEP_CHUNK_SECONDS: Final[float] = 3600.0

Clock = Callable[[], datetime.datetime]


# ---------------------------------------------------------------------------
# Pure trigger arithmetic
# ---------------------------------------------------------------------------


def next_daily_trigger(now: datetime.datetime, hour: int) -> datetime.datetime:
    """Return the next occurrence of ``hour``:00 strictly after ``now``.

    If ``now`` is at or past today's target, the answer is tomorrow's target.
    Wall-clock arithmetic keeps the hour fixed across DST changes.
    """
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += datetime.timedelta(days=1)
    return target


def serviced_today(last_run: datetime.datetime | None, now: datetime.datetime) -> bool:
    """True when ``last_run`` falls on the same calendar day as ``now``.

    ``last_run`` is converted into ``now``'s timezone first, so a UTC
    timestamp from the database compares against the local day.
    """
    if last_run is None:
        return False
    if now.tzinfo is not None and last_run.tzinfo is not None:
        last_run = last_run.astimezone(now.tzinfo)
    return last_run.date() == now.date()


def is_weekly_due(
    now: datetime.datetime,
    day: Weekday,
    hour: int,
    last_run: datetime.datetime | None,
) -> bool:
    """True when ``now`` is inside the tenant's weekly slot and it was not serviced today."""
    if now.weekday() != day.index or now.hour != hour:
        return False
    return not serviced_today(last_run, now)


# ---------------------------------------------------------------------------
# Shutdown-aware sleeping
# ---------------------------------------------------------------------------


async def sleep_or_shutdown(shutdown: asyncio.Event, seconds: float) -> bool:
    """Sleep up to ``seconds``. Returns True if shutdown was signalled meanwhile."""
    if shutdown.is_set():
        return True
    if seconds <= 0:
        return False
    try:
        await asyncio.wait_for(shutdown.wait(), timeout=seconds)
    except TimeoutError:
        return False
    return True


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


class IntervalTrigger:
    """Fire immediately, then every ``interval_seconds``.

    Next fire is last fire + interval. A cycle that overruns the interval
    fires again immediately; missed ticks are not queued. The weekly report
    job uses this as its poll trigger.
    """

    def __init__(
        self,
        interval_seconds: float,
        *,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds <= 0:
            msg = f"interval_seconds must be > 0, got {interval_seconds}"
            raise ValueError(msg)
        self._interval = interval_seconds
        self._monotonic = monotonic
        self._last_fire: float | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def seconds_until_next(self) -> float:
        """Delay before the next fire; 0 on first call or after an overrun."""
        if self._last_fire is None:
            return 0.0
        return max(0.0, self._last_fire + self._interval - self._monotonic())

    async def wait(self, shutdown: asyncio.Event) -> bool:
        """Wait for the next tick. Returns False if shutdown was signalled instead."""
        if await sleep_or_shutdown(shutdown, self.seconds_until_next()):
            return False
        self._last_fire = self._monotonic()
        return True

    def describe(self) -> str:
        return f"every {self._interval:.0f}s"


class DailyTrigger:
    """Fire once a day at ``hour``:00 wall-clock time in the clock's timezone.

    Never fires immediately on startup: if today's target already passed,
    the first fire is tomorrow.
    """

    def __init__(self, hour: int, *, clock: Clock) -> None:
        self._hour = hour
        self._clock = clock

    async def wait(self, shutdown: asyncio.Event) -> bool:
        """Sleep until the next target. Returns False if shutdown was signalled instead."""
        target = next_daily_trigger(self._clock(), self._hour)
        logger.info(
            "Daily trigger scheduled for %s (in %s).",
            target.isoformat(),
            target - self._clock(),
        )
        while True:
            remaining = (target - self._clock()).total_seconds()
            if remaining <= 0:
                return True
            if await sleep_or_shutdown(shutdown, min(remaining, MAX_SLEEP_CHUNK_SECONDS)):
                return False

    def describe(self) -> str:
        return f"daily at {self._hour:02d}:00"


Trigger = IntervalTrigger | DailyTrigger


# ---------------------------------------------------------------------------
# Job loop
# ---------------------------------------------------------------------------


async def run_job_loop(
    name: str,
    trigger: Trigger,
    cycle: Callable[[], Awaitable[object]],
    shutdown: asyncio.Event,
    *,
    backoff_seconds: float,
) -> None:
    """Run ``cycle`` each time ``trigger`` fires until ``shutdown`` is set.

    Errors that escape a cycle are loop-fatal only for that iteration: they
    are logged, the loop pauses for ``backoff_seconds``, then scheduling
    resumes from the current time. Nothing escapes to the caller except
    cancellation.
    """
    logger.info("Job '%s' loop starting (%s).", name, trigger.describe())
    while not shutdown.is_set():
        try:
            if not await trigger.wait(shutdown):
                break
            with log_context(job=name):
                await cycle()
        except Exception:
            logger.exception(
                "Error in job '%s' loop; pausing %.0fs before resuming.",
                name,
                backoff_seconds,
            )
            if await sleep_or_shutdown(shutdown, backoff_seconds):
                break
    logger.info("Job '%s' loop stopped.", name)

"""Scheduling, fan-out, status and reporting services.

Re-exports all public service classes so consumers can import directly:
    from Gordon_Worker.services import ConcurrencyLimiter, StatusAggregator
"""

from Gordon_Worker.services.analysis import SpendingSummary, summarize_spending
from Gordon_Worker.services.fanout import TenantTaskRunner, TenantWork
from Gordon_Worker.services.health import ConnectivityProbes
from Gordon_Worker.services.limiter import ConcurrencyLimiter
from Gordon_Worker.services.reports import ReportGenerator
from Gordon_Worker.services.representative import RepresentativeSelector
from Gordon_Worker.services.scheduler import (
    DailyTrigger,
    IntervalTrigger,
    is_weekly_due,
    next_daily_trigger,
    run_job_loop,
    serviced_today,
)
from Gordon_Worker.services.status import StatusAggregator

__all__ = [
    # Scheduling
    "DailyTrigger",
    "IntervalTrigger",
    "is_weekly_due",
    "next_daily_trigger",
    "run_job_loop",
    "serviced_today",
    # Fan-out
    "ConcurrencyLimiter",
    "TenantTaskRunner",
    "TenantWork",
    # Status
    "ConnectivityProbes",
    "RepresentativeSelector",
    "StatusAggregator",
    # Reporting
    "ReportGenerator",
    "SpendingSummary",
    "summarize_spending",
]

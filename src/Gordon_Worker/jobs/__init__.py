"""The four recurring jobs and their shared context.

Re-exports the job classes so the engine can import directly:
    from Gordon_Worker.jobs import ConnectivityJob, JobContext
"""

from Gordon_Worker.jobs.base import Job, JobContext
from Gordon_Worker.jobs.connectivity import ConnectivityJob
from Gordon_Worker.jobs.daily_briefing import DailyBriefingJob
from Gordon_Worker.jobs.transactions import TransactionsJob
from Gordon_Worker.jobs.weekly_report import WeeklyReportJob

__all__ = [
    "ConnectivityJob",
    "DailyBriefingJob",
    "Job",
    "JobContext",
    "TransactionsJob",
    "WeeklyReportJob",
]

"""StrEnum types for the scheduling engine.

Values are lowercase strings so they round-trip through SQLite and JSON
config unchanged. Use enum members in business logic, never raw strings.
"""

from enum import StrEnum


class JobName(StrEnum):
    """The four recurring background jobs."""

    CONNECTIVITY = "connectivity"
    TRANSACTIONS = "transactions"
    WEEKLY_REPORT = "weekly_report"
    DAILY_BRIEFING = "daily_briefing"


class TenantRole(StrEnum):
    """Privilege level of a tenant account."""

    ADMIN = "admin"
    USER = "user"


class AiProvider(StrEnum):
    """Supported AI providers. Ollama runs locally and carries no quota cost."""

    OLLAMA = "ollama"
    GEMINI = "gemini"


class OutcomeStatus(StrEnum):
    """How a single tenant's unit of work settled."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class Weekday(StrEnum):
    """Day of week for per-tenant report targets (Monday first, like ``date.weekday()``)."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def index(self) -> int:
        """Return the ``date.weekday()`` index for this day."""
        return list(Weekday).index(self)

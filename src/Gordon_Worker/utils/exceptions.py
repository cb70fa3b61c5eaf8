"""Custom exception hierarchy for the Gordon Worker engine.

All domain-specific exceptions inherit from WorkerError, which carries the
tenant and job involved so that failure boundaries can log them uniformly.
"""


class WorkerError(Exception):
    """Base exception for all engine failures.

    Attributes:
        tenant_id: The tenant being processed when the failure happened, if any.
        job: The job name that was running, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        tenant_id: int | None = None,
        job: str | None = None,
    ) -> None:
        self.tenant_id = tenant_id
        self.job = job
        super().__init__(message)


class DatabaseUnavailableError(WorkerError):
    """Raised when the persistence layer cannot be reached."""


class SettingsNotFoundError(WorkerError):
    """Raised when a tenant has no stored settings."""


class TenantSkipped(WorkerError):  # noqa: N818
    """Signals a skip condition (missing settings, blank credentials, disabled flag).

    Not an error: the tenant settles as ``skipped`` and is logged at info level.
    """

    def __init__(self, reason: str, *, tenant_id: int | None = None, job: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason, tenant_id=tenant_id, job=job)


class ExternalServiceError(WorkerError):
    """Raised when an external collaborator (bank, AI, messaging) fails.

    Attributes:
        service: Name of the collaborator (e.g., "investec", "gemini").
        http_status: The HTTP status code, if the failure was HTTP-related.
    """

    def __init__(
        self,
        message: str,
        *,
        service: str,
        tenant_id: int | None = None,
        http_status: int | None = None,
    ) -> None:
        self.service = service
        self.http_status = http_status
        super().__init__(message, tenant_id=tenant_id)


class BankingApiError(ExternalServiceError):
    """Raised when the banking API rejects a request or is unreachable."""


class AiProviderError(ExternalServiceError):
    """Raised when an AI provider call fails."""

"""Pydantic v2 models, enums, and type definitions.

Re-exports all public models so consumers can import directly:
    from Gordon_Worker.models import Tenant, TenantSettings, StatusSnapshot
"""

from Gordon_Worker.models.banking import Account, BankTransaction
from Gordon_Worker.models.enums import (
    AiProvider,
    JobName,
    OutcomeStatus,
    TenantRole,
    Weekday,
)
from Gordon_Worker.models.outcome import CycleReport, TenantOutcome
from Gordon_Worker.models.status import ProbeResult, RepresentativeResult, StatusSnapshot
from Gordon_Worker.models.tenant import (
    AiSettings,
    BankingCredentials,
    NotificationSettings,
    RepresentativeCriteria,
    Tenant,
    TenantSettings,
)

__all__ = [
    # Enums
    "AiProvider",
    "JobName",
    "OutcomeStatus",
    "TenantRole",
    "Weekday",
    # Tenants
    "AiSettings",
    "BankingCredentials",
    "NotificationSettings",
    "RepresentativeCriteria",
    "Tenant",
    "TenantSettings",
    # Banking
    "Account",
    "BankTransaction",
    # Cycles
    "CycleReport",
    "TenantOutcome",
    # Status
    "ProbeResult",
    "RepresentativeResult",
    "StatusSnapshot",
]

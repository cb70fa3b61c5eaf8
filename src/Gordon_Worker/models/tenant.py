"""Tenant models: account identity, per-tenant settings, and credentials.

TenantSettings is stored as one JSON document per tenant. Unknown keys from
older documents are ignored so the schema can grow without a migration.
"""

import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from Gordon_Worker.models.enums import AiProvider, TenantRole, Weekday

# --- Scheduling boundaries ---
HOUR_MIN: int = 0
HOUR_MAX: int = 23

# --- Alert exclusions (matched case-insensitively against descriptions) ---
DEFAULT_FIXED_COST_KEYWORDS: tuple[str, ...] = (
    "SCHOOL", "MORTGAGE", "LEVIES", "HOME LOAN", "INSURANCE", "BOND", "INVESTMENT",
    "MEDICAL", "DISCOVERY", "NETFLIX", "SPOTIFY", "VODACOM", "MTN", "TELKOM",
    "ELECTRICITY", "MUNICIPALITY", "CITY OF", "DSTV", "MULTICHOICE", "FIBRE",
    "OUTSURANCE", "SANTAM", "OLD MUTUAL", "SANLAM", "LIBERTY", "RETIREMENT",
    "PENSION", "GYM",
)
DEFAULT_SALARY_KEYWORDS: tuple[str, ...] = ("SALARY", "TCP 131", "TCP131")


def _mentions_any(description: str, keywords: list[str]) -> bool:
    upper = description.upper()
    return any(keyword.upper() in upper for keyword in keywords)


class Tenant(BaseModel):
    """A single tenant (user account) whose jobs run independently of others."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: TenantRole = TenantRole.USER
    is_system: bool = False
    created_at: datetime.datetime | None = None

    @property
    def is_admin(self) -> bool:
        """True when the tenant holds elevated privilege."""
        return self.role == TenantRole.ADMIN


class BankingCredentials(BaseModel):
    """Per-tenant credentials for the banking API."""

    model_config = ConfigDict(frozen=True)

    client_id: str = ""
    secret: str = ""
    api_key: str = ""
    base_url: str = "https://openapi.investec.com/"

    @property
    def is_blank(self) -> bool:
        """True when any credential needed for OAuth is missing."""
        return not (self.client_id.strip() and self.secret.strip() and self.api_key.strip())


class AiSettings(BaseModel):
    """Provider configuration for the primary and fallback AI models."""

    model_config = ConfigDict(frozen=True)

    provider: AiProvider = AiProvider.OLLAMA
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_key: str = ""

    enable_fallback: bool = True
    fallback_provider: AiProvider = AiProvider.GEMINI
    fallback_ollama_base_url: str = "http://localhost:11434"
    fallback_ollama_model: str = "llama3"
    fallback_gemini_model: str = "gemini-2.0-flash"
    fallback_gemini_api_key: str = ""

    timeout_seconds: float = 90.0

    def provider_for(self, *, use_fallback: bool) -> AiProvider:
        """Return the provider used for the primary or fallback lane."""
        return self.fallback_provider if use_fallback else self.provider

    def model_for(self, *, use_fallback: bool) -> str:
        """Return the model name the lane's provider is asked for."""
        if self.provider_for(use_fallback=use_fallback) == AiProvider.OLLAMA:
            return self.fallback_ollama_model if use_fallback else self.ollama_model
        return self.fallback_gemini_model if use_fallback else self.gemini_model


class NotificationSettings(BaseModel):
    """Telegram delivery target for alerts, briefings and reports."""

    model_config = ConfigDict(frozen=True)

    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    @property
    def is_blank(self) -> bool:
        """True when the tenant has not configured a delivery target."""
        return not (self.telegram_bot_token.strip() and self.telegram_chat_id.strip())


class TenantSettings(BaseModel):
    """Everything a job needs to know about one tenant.

    Defaults mirror a freshly onboarded tenant: Monday 09:00 weekly report,
    local Ollama as the primary model, Gemini as the fallback.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    user_name: str = "Sir/Madam"
    system_persona: str = "Gordon"
    report_day_of_week: Weekday = Weekday.MONDAY
    report_hour: int = 9
    currency_symbol: str = "R"

    banking: BankingCredentials = BankingCredentials()
    ai: AiSettings = AiSettings()
    notifications: NotificationSettings = NotificationSettings()

    history_days_back: int = 180
    sync_buffer_days: float = 0.05
    unexpected_payment_threshold: Decimal = Decimal("3000")
    income_alert_threshold: Decimal = Decimal("5000")
    fixed_cost_keywords: list[str] = list(DEFAULT_FIXED_COST_KEYWORDS)
    salary_keywords: list[str] = list(DEFAULT_SALARY_KEYWORDS)

    @field_validator("report_day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value: object) -> object:
        """Accept ``"Monday"`` as well as ``"monday"``."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("report_hour")
    @classmethod
    def validate_report_hour(cls, value: int) -> int:
        """Report hour must be a valid hour of day."""
        if not HOUR_MIN <= value <= HOUR_MAX:
            msg = f"report_hour must be between {HOUR_MIN} and {HOUR_MAX}, got {value}"
            raise ValueError(msg)
        return value

    @field_validator("fixed_cost_keywords", "salary_keywords", mode="before")
    @classmethod
    def split_keywords(cls, value: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    def is_fixed_cost(self, description: str) -> bool:
        """True when the description names a recurring commitment such as a bond or insurance."""
        return _mentions_any(description, self.fixed_cost_keywords)

    def is_salary(self, description: str) -> bool:
        return _mentions_any(description, self.salary_keywords)


class RepresentativeCriteria(BaseModel):
    """Filter for choosing a representative tenant candidate.

    Candidates matching the filter are ordered by ``is_system`` descending,
    then by id ascending; the first one wins.
    """

    model_config = ConfigDict(frozen=True)

    role: TenantRole | None = None
    require_settings: bool = False
    system_only: bool = False

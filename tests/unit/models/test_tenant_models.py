"""Tests for tenant, settings and credential models."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from Gordon_Worker.models import (
    AiProvider,
    AiSettings,
    BankingCredentials,
    NotificationSettings,
    Tenant,
    TenantRole,
    TenantSettings,
    Weekday,
)


class TestTenant:
    """Tests for the Tenant model."""

    def test_defaults(self) -> None:
        tenant = Tenant(id=1, username="thandi")
        assert tenant.role == TenantRole.USER
        assert tenant.is_system is False
        assert tenant.is_admin is False

    def test_admin(self) -> None:
        assert Tenant(id=2, username="root", role=TenantRole.ADMIN).is_admin is True

    def test_frozen(self) -> None:
        tenant = Tenant(id=1, username="thandi")
        with pytest.raises(ValidationError):
            tenant.username = "other"  # type: ignore[misc]


class TestBankingCredentials:
    """Tests for BankingCredentials.is_blank."""

    def test_default_is_blank(self) -> None:
        assert BankingCredentials().is_blank is True

    def test_complete_is_not_blank(self, sample_credentials: BankingCredentials) -> None:
        assert sample_credentials.is_blank is False

    @pytest.mark.parametrize("missing", ["client_id", "secret", "api_key"])
    def test_any_missing_field_is_blank(self, missing: str) -> None:
        values = {"client_id": "c", "secret": "s", "api_key": "k", missing: "   "}
        assert BankingCredentials(**values).is_blank is True


class TestNotificationSettings:
    """Tests for NotificationSettings.is_blank."""

    def test_blank(self) -> None:
        assert NotificationSettings().is_blank is True

    def test_chat_id_required(self) -> None:
        assert NotificationSettings(telegram_bot_token="123:abc").is_blank is True

    def test_configured(self) -> None:
        settings = NotificationSettings(telegram_bot_token="123:abc", telegram_chat_id="42")
        assert settings.is_blank is False


class TestAiSettings:
    """Tests for AiSettings."""

    def test_defaults_local_primary(self) -> None:
        settings = AiSettings()
        assert settings.provider == AiProvider.OLLAMA
        assert settings.fallback_provider == AiProvider.GEMINI
        assert settings.enable_fallback is True

    def test_provider_for(self) -> None:
        settings = AiSettings(provider=AiProvider.GEMINI, fallback_provider=AiProvider.OLLAMA)
        assert settings.provider_for(use_fallback=False) == AiProvider.GEMINI
        assert settings.provider_for(use_fallback=True) == AiProvider.OLLAMA

    def test_model_for(self) -> None:
        ai = AiSettings(provider=AiProvider.GEMINI, fallback_provider=AiProvider.OLLAMA)
        assert ai.model_for(use_fallback=False) == "gemini-2.0-flash"
        assert ai.model_for(use_fallback=True) == "llama3"


class TestTenantSettings:
    """Tests for TenantSettings parsing and validation."""

    def test_defaults(self) -> None:
        settings = TenantSettings()
        assert settings.report_day_of_week == Weekday.MONDAY
        assert settings.report_hour == 9
        assert settings.currency_symbol == "R"
        assert settings.unexpected_payment_threshold == Decimal("3000")
        assert settings.banking.is_blank

    def test_day_is_case_insensitive(self) -> None:
        settings = TenantSettings(report_day_of_week=" Friday ")  # type: ignore[arg-type]
        assert settings.report_day_of_week == Weekday.FRIDAY

    def test_unknown_day_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TenantSettings(report_day_of_week="someday")  # type: ignore[arg-type]

    @pytest.mark.parametrize("hour", [-1, 24, 99])
    def test_report_hour_out_of_range(self, hour: int) -> None:
        with pytest.raises(ValidationError, match="report_hour"):
            TenantSettings(report_hour=hour)

    def test_unknown_keys_ignored(self) -> None:
        """Documents written by older versions still load."""
        settings = TenantSettings.model_validate({"user_name": "Sipho", "legacy_flag": True})
        assert settings.user_name == "Sipho"

    def test_json_roundtrip(self, sample_settings: TenantSettings) -> None:
        restored = TenantSettings.model_validate_json(sample_settings.model_dump_json())
        assert restored == sample_settings

    def test_weekday_index_matches_date_weekday(self) -> None:
        assert Weekday.MONDAY.index == 0
        assert Weekday.SUNDAY.index == 6

    def test_keywords_from_comma_separated_string(self) -> None:
        settings = TenantSettings(fixed_cost_keywords="bond, levies,,", salary_keywords="PAYROLL")
        assert settings.fixed_cost_keywords == ["bond", "levies"]
        assert settings.is_fixed_cost("BODY CORPORATE LEVIES JAN") is True
        assert settings.is_salary("acme payroll") is True
        assert settings.is_salary("SALARY") is False

    def test_default_keywords(self) -> None:
        settings = TenantSettings()
        assert settings.is_fixed_cost("Outsurance premium") is True
        assert settings.is_salary("TCP131 ACME") is True
        assert settings.is_fixed_cost("CHECKERS HYPER") is False

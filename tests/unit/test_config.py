"""
Unit tests for settings validation
"""

import pytest
from datetime import date

from core.config import Settings
from core.exceptions import ConfigurationError


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.enabled_reports == ["adx", "anura", "ga4"]
    assert settings.POLL_INITIAL_DELAY == 5.0
    assert settings.POLL_BACKOFF == 1.5
    assert settings.POLL_MAX_DELAY == 60.0
    assert settings.POLL_MAX_ATTEMPTS == 60
    assert settings.ANURA_TIMEZONE == "America/Los_Angeles"


def test_report_date_parsed_from_string():
    settings = Settings(_env_file=None, REPORT_DATE="2024-07-14")

    assert settings.REPORT_DATE == date(2024, 7, 14)


def test_env_vars_are_read(monkeypatch):
    monkeypatch.setenv("ENABLED_REPORTS", "ga4, ADX")
    monkeypatch.setenv("FORCE_RERUN", "true")

    settings = Settings(_env_file=None)

    assert settings.enabled_reports == ["ga4", "adx"]
    assert settings.FORCE_RERUN is True


def test_custom_dimension_ids():
    settings = Settings(_env_file=None, ADX_CUSTOM_DIMENSION_KEY_IDS="1, 2,3")

    assert settings.adx_custom_dimension_key_ids == [1, 2, 3]


def test_validate_passes_when_configured(settings):
    settings.validate_for_run()


def test_missing_settings_are_listed():
    settings = Settings(_env_file=None, ENABLED_REPORTS="adx,anura")

    with pytest.raises(ConfigurationError) as exc_info:
        settings.validate_for_run()

    assert exc_info.value.context["missing"] == [
        "DATABASE_URL",
        "ADX_NETWORK_CODE",
        "ANURA_API_TOKEN",
        "ANURA_INSTANCE_ID",
    ]


def test_only_enabled_reports_are_required():
    settings = Settings(_env_file=None, DATABASE_URL="sqlite+aiosqlite://", ENABLED_REPORTS="ga4", GA4_PROPERTY_ID="1")

    settings.validate_for_run()


def test_unknown_report_type():
    settings = Settings(_env_file=None, DATABASE_URL="sqlite+aiosqlite://", ENABLED_REPORTS="adx,dfp")

    with pytest.raises(ConfigurationError) as exc_info:
        settings.validate_for_run()

    assert exc_info.value.context["unknown"] == ["dfp"]


def test_blank_value_counts_as_missing():
    settings = Settings(_env_file=None, GA4_PROPERTY_ID="")

    with pytest.raises(ConfigurationError):
        settings.require("GA4_PROPERTY_ID")

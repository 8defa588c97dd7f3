from __future__ import annotations

from typing import Iterator

import pytest

from services.notifier import NullNotifier, SmsNotifier
from services.pipeline import build_default_pipeline
from settings import get_settings

_ENV_VARS = (
    "HOST",
    "PORT",
    "ALERT_COOLDOWN_SECONDS",
    "ALERT_INFLIGHT_GUARD",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_NUMBER",
    "ALERT_TO_NUMBER",
    "TWILIO_API_BASE_URL",
    "LOG_LEVEL",
    "CORS_ALLOW_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    build_default_pipeline.cache_clear()
    yield
    build_default_pipeline.cache_clear()
    get_settings.cache_clear()


def test_defaults_apply_without_environment() -> None:
    settings = get_settings()

    assert settings.host == "0.0.0.0"
    assert settings.port == 3000
    assert settings.alert_cooldown_seconds == 0.0
    assert settings.alert_inflight_guard is False
    assert settings.notifications_configured is False
    assert settings.twilio_api_base_url == "https://api.twilio.com"
    assert settings.log_level == "INFO"
    assert settings.cors_allow_origins == ("*",)


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("ALERT_COOLDOWN_SECONDS", "90")
    monkeypatch.setenv("ALERT_INFLIGHT_GUARD", "yes")
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "token")
    monkeypatch.setenv("TWILIO_FROM_NUMBER", "+15550000000")
    monkeypatch.setenv("ALERT_TO_NUMBER", "+15551111111")
    monkeypatch.setenv("TWILIO_API_BASE_URL", "http://localhost:9999/")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", " http://dashboard.example , ,http://ops.example")

    settings = get_settings()
    pipeline = build_default_pipeline()

    assert settings.port == 8080
    assert settings.twilio_api_base_url == "http://localhost:9999"
    assert settings.log_level == "DEBUG"
    assert settings.cors_allow_origins == ("http://dashboard.example", "http://ops.example")
    assert pipeline.alerts.cooldown_seconds == 90.0
    assert pipeline.alerts.inflight_guard is True
    assert isinstance(pipeline.alerts.notifier, SmsNotifier)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("PORT", "not-a-port"),
        ("PORT", "70000"),
        ("ALERT_COOLDOWN_SECONDS", "soon"),
        ("ALERT_COOLDOWN_SECONDS", "nan"),
        ("ALERT_INFLIGHT_GUARD", "maybe"),
        ("HOST", "   "),
        ("CORS_ALLOW_ORIGINS", " , "),
    ],
)
def test_invalid_values_fall_back_to_defaults(monkeypatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    settings = get_settings()

    assert settings.port == 3000
    assert settings.alert_cooldown_seconds == 0.0
    assert settings.alert_inflight_guard is False
    assert settings.host == "0.0.0.0"
    assert settings.cors_allow_origins == ("*",)


def test_negative_cooldown_disables_it(monkeypatch) -> None:
    monkeypatch.setenv("ALERT_COOLDOWN_SECONDS", "-30")

    assert get_settings().alert_cooldown_seconds == 0.0


def test_partial_credentials_fall_back_to_null_notifier(monkeypatch) -> None:
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "token")

    pipeline = build_default_pipeline()

    assert isinstance(pipeline.alerts.notifier, NullNotifier)

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_COOLDOWN_ENV = "ALERT_COOLDOWN_SECONDS"
_INFLIGHT_GUARD_ENV = "ALERT_INFLIGHT_GUARD"
_ACCOUNT_SID_ENV = "TWILIO_ACCOUNT_SID"
_AUTH_TOKEN_ENV = "TWILIO_AUTH_TOKEN"
_FROM_NUMBER_ENV = "TWILIO_FROM_NUMBER"
_TO_NUMBER_ENV = "ALERT_TO_NUMBER"
_API_BASE_URL_ENV = "TWILIO_API_BASE_URL"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_CORS_ORIGINS_ENV = "CORS_ALLOW_ORIGINS"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    alert_cooldown_seconds: float
    alert_inflight_guard: bool
    twilio_account_sid: Optional[str]
    twilio_auth_token: Optional[str]
    twilio_from_number: Optional[str]
    alert_to_number: Optional[str]
    twilio_api_base_url: str
    log_level: str
    cors_allow_origins: Tuple[str, ...] = ("*",)

    @property
    def notifications_configured(self) -> bool:
        return all(
            (
                self.twilio_account_sid,
                self.twilio_auth_token,
                self.twilio_from_number,
                self.alert_to_number,
            )
        )


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_port(default: int) -> int:
    value = os.getenv(_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_cooldown(default: float) -> float:
    value = os.getenv(_COOLDOWN_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if math.isnan(parsed):
        return default
    return parsed if parsed > 0 else 0.0


def _read_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_origins(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_CORS_ORIGINS_ENV)
    if value is None:
        return default
    origins = tuple(origin.strip() for origin in value.split(",") if origin.strip())
    return origins or default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_port(3000),
        alert_cooldown_seconds=_read_cooldown(0.0),
        alert_inflight_guard=_read_flag(_INFLIGHT_GUARD_ENV, False),
        twilio_account_sid=_read_optional_env(_ACCOUNT_SID_ENV),
        twilio_auth_token=_read_optional_env(_AUTH_TOKEN_ENV),
        twilio_from_number=_read_optional_env(_FROM_NUMBER_ENV),
        alert_to_number=_read_optional_env(_TO_NUMBER_ENV),
        twilio_api_base_url=_read_str_env(_API_BASE_URL_ENV, "https://api.twilio.com").rstrip("/"),
        log_level=_read_log_level("INFO"),
        cors_allow_origins=_read_origins(("*",)),
    )

"""Out-of-band notification delivery."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class Notifier(Protocol):
    async def send(self, message: str) -> bool: ...

    async def aclose(self) -> None: ...


class NullNotifier:
    """Stand-in used when no provider credentials are configured."""

    async def send(self, message: str) -> bool:
        logger.warning(
            "Notification skipped; provider is not configured.",
            extra={"reason": "not_configured"},
        )
        return False

    async def aclose(self) -> None:
        return None


class SmsNotifier:
    """Sends text messages through a Twilio-compatible REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        to_number: str,
        base_url: str = "https://api.twilio.com",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.account_sid = account_sid
        self.from_number = from_number
        self.to_number = to_number
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            auth=(account_sid, auth_token),
            timeout=timeout,
            transport=transport,
        )

    @property
    def messages_path(self) -> str:
        return f"/2010-04-01/Accounts/{self.account_sid}/Messages.json"

    async def send(self, message: str) -> bool:
        try:
            response = await self._client.post(
                self.messages_path,
                data={"From": self.from_number, "To": self.to_number, "Body": message},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Notification provider rejected the message.",
                extra={"status_code": exc.response.status_code, "reason": _detail(exc.response)},
            )
            return False
        except httpx.HTTPError as exc:
            logger.warning(
                "Notification provider unreachable.",
                extra={"reason": type(exc).__name__},
            )
            return False
        return True

    async def aclose(self) -> None:
        await self._client.aclose()


def _detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or "no detail provided"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return "no detail provided"


def build_notifier(settings: Settings) -> Notifier:
    """Pick the SMS provider when fully configured, otherwise a no-op."""
    if not settings.notifications_configured:
        logger.warning(
            "SMS credentials missing; alerts will be logged but not delivered.",
            extra={"reason": "not_configured"},
        )
        return NullNotifier()
    assert settings.twilio_account_sid and settings.twilio_auth_token
    assert settings.twilio_from_number and settings.alert_to_number
    return SmsNotifier(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_from_number,
        to_number=settings.alert_to_number,
        base_url=settings.twilio_api_base_url,
    )

"""Alert decision engine for critical temperature excursions.

The controller is armed (``alert_sent`` is false) until a dispatch succeeds
while the temperature is inside the critical window. It re-arms as soon as a
sample outside the window is observed.

Dispatch runs as a separate task and only its completion handler sets
``alert_sent``. While a delivery is in flight the controller is still armed,
so another in-window sample schedules a second dispatch. Pass
``inflight_guard=True`` to skip dispatch while one is pending.

The cooldown never ends an excursion by itself: ``alert_sent`` is cleared only
by a sample outside the window. What it does gate is the first dispatch of a
new excursion that starts within ``cooldown_seconds`` of the last delivery.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from app.schemas import AlertStatus
from services.errors import DeliveryError
from services.notifier import Notifier

logger = logging.getLogger(__name__)

CRITICAL_MIN = 30.0
CRITICAL_MAX = 35.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def in_critical_window(temperature: float) -> bool:
    return CRITICAL_MIN <= temperature <= CRITICAL_MAX


def format_alert_message(temperature: float) -> str:
    return (
        f"ALERT: temperature is {temperature:g} C, inside the critical range "
        f"{CRITICAL_MIN:g}-{CRITICAL_MAX:g} C."
    )


class AlertController:
    """Decides when a temperature sample should trigger a notification."""

    def __init__(
        self,
        notifier: Notifier,
        cooldown_seconds: float = 0.0,
        inflight_guard: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.notifier = notifier
        self.cooldown_seconds = max(cooldown_seconds, 0.0)
        self.inflight_guard = inflight_guard
        self._clock = clock or _utcnow
        self.alert_sent = False
        self.last_alert_time: Optional[datetime] = None
        self._pending: Set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def cooldown_passed(self, now: datetime) -> bool:
        if self.cooldown_seconds == 0 or self.last_alert_time is None:
            return True
        elapsed = (now - self.last_alert_time).total_seconds()
        return elapsed > self.cooldown_seconds

    def evaluate(self, temperature: Optional[float]) -> Optional[asyncio.Task[None]]:
        """Update alert state for one sample.

        Returns the scheduled dispatch task, or ``None`` when nothing was
        dispatched. Must be called from within a running event loop.
        """
        if temperature is None or math.isnan(temperature):
            return None

        if not in_critical_window(temperature):
            if self.alert_sent:
                logger.info(
                    "Temperature left the critical range; alert re-armed.",
                    extra={"temperature": temperature, "event": "alert_reset"},
                )
            self.alert_sent = False
            return None

        if self.alert_sent:
            return None
        if not self.cooldown_passed(self._clock()):
            logger.debug(
                "Alert suppressed by cooldown.",
                extra={"temperature": temperature, "cooldown_seconds": self.cooldown_seconds},
            )
            return None
        if self.inflight_guard and self._pending:
            logger.info(
                "Alert dispatch already in flight; skipping.",
                extra={"temperature": temperature, "in_flight": self.in_flight},
            )
            return None

        return self._schedule(temperature)

    def snapshot(self) -> AlertStatus:
        return AlertStatus(
            alert_sent=self.alert_sent,
            last_alert_time=self.last_alert_time,
            in_flight=self.in_flight,
            cooldown_seconds=self.cooldown_seconds,
            inflight_guard=self.inflight_guard,
            window_min=CRITICAL_MIN,
            window_max=CRITICAL_MAX,
        )

    async def drain(self) -> None:
        """Wait until every scheduled dispatch has completed."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel pending dispatches and wait for them to unwind."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _schedule(self, temperature: float) -> asyncio.Task[None]:
        message = format_alert_message(temperature)
        task = asyncio.get_running_loop().create_task(self._dispatch(temperature, message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.info(
            "Alert dispatch scheduled.",
            extra={"temperature": temperature, "in_flight": self.in_flight, "event": "alert_dispatch"},
        )
        return task

    async def _dispatch(self, temperature: float, message: str) -> None:
        try:
            await self._deliver(message)
        except DeliveryError as exc:
            logger.warning(
                "Alert delivery failed; controller stays armed.",
                extra={"temperature": temperature, "reason": str(exc)},
            )
            return

        self.alert_sent = True
        self.last_alert_time = self._clock()
        logger.info(
            "Alert delivered.",
            extra={"temperature": temperature, "event": "alert_sent"},
        )

    async def _deliver(self, message: str) -> None:
        try:
            delivered = await self.notifier.send(message)
        except Exception as exc:
            raise DeliveryError(f"{type(exc).__name__}: {exc}") from exc
        if not delivered:
            raise DeliveryError("notifier reported failure")

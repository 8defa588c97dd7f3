"""Ingest orchestration: derive, store, alert, broadcast."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional

from app.schemas import SENSOR_DATA_EVENT, Reading
from datastore.reading_store import ReadingStore
from models.records import FailureKind, IngestResult, PayloadCheck
from services.alerts import AlertController
from services.broadcaster import Broadcaster, Observer
from services.errors import InternalError, PayloadValidationError, TelemetryError
from services.notifier import build_notifier
from services.status import StatusDeriver, resolve_temperature
from settings import get_settings

logger = logging.getLogger(__name__)

INVALID_PAYLOAD_MESSAGE = "Invalid JSON received"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def check_payload(payload: Any) -> PayloadCheck:
    """Accept only JSON objects with string keys."""
    if not isinstance(payload, dict):
        return PayloadCheck(valid=False, reason=f"expected an object, got {type(payload).__name__}")
    if not all(isinstance(key, str) for key in payload):
        return PayloadCheck(valid=False, reason="object keys must be strings")
    return PayloadCheck(valid=True, fields=dict(payload))


class IngestPipeline:
    """Owns the latest reading, the alert state and the observer set."""

    def __init__(
        self,
        store: ReadingStore,
        deriver: StatusDeriver,
        alerts: AlertController,
        broadcaster: Broadcaster,
    ) -> None:
        self.store = store
        self.deriver = deriver
        self.alerts = alerts
        self.broadcaster = broadcaster

    async def ingest(self, payload: Any) -> IngestResult:
        """Process one raw payload; never raises."""
        try:
            reading = await self._process(payload)
        except PayloadValidationError as exc:
            logger.info(
                "Rejected ingest payload.",
                extra={"reason": str(exc), "status_code": 400},
            )
            return IngestResult.failed(FailureKind.validation, INVALID_PAYLOAD_MESSAGE)
        except InternalError as exc:
            logger.error(
                "Ingest failed.",
                exc_info=exc.__cause__ or exc,
                extra={"reason": str(exc), "status_code": 500},
            )
            return IngestResult.failed(FailureKind.internal, INTERNAL_ERROR_MESSAGE)

        logger.info(
            "Reading ingested.",
            extra={
                "temp_level": reading.status.temp_level.value,
                "day_or_night": reading.status.day_or_night.value,
                "observer_count": self.broadcaster.observer_count,
            },
        )
        return IngestResult.success()

    def latest(self) -> Optional[Reading]:
        return self.store.get()

    async def register_observer(self, observer: Observer) -> None:
        """Subscribe an observer and replay the latest reading to it alone."""
        latest = self.store.get()
        self.broadcaster.add(observer)
        if latest is not None:
            await self.broadcaster.send_to(observer, SENSOR_DATA_EVENT, latest.to_payload())

    def unregister_observer(self, observer: Observer) -> None:
        self.broadcaster.remove(observer)

    async def shutdown(self) -> None:
        await self.alerts.shutdown()
        await self.alerts.notifier.aclose()

    async def _process(self, payload: Any) -> Reading:
        check = check_payload(payload)
        if not check.valid:
            raise PayloadValidationError(check.reason or INVALID_PAYLOAD_MESSAGE)

        try:
            fields = check.fields
            reading = Reading.model_validate(
                {
                    **fields,
                    "receivedAt": datetime.now(timezone.utc),
                    "status": self.deriver.derive(fields),
                }
            )
            self.store.set(reading)
            self.alerts.evaluate(resolve_temperature(fields))
            await self.broadcaster.broadcast(SENSOR_DATA_EVENT, reading.to_payload())
        except TelemetryError:
            raise
        except Exception as exc:
            raise InternalError(f"{type(exc).__name__}: {exc}") from exc
        return reading


@lru_cache
def build_default_pipeline() -> IngestPipeline:
    """Factory that wires the pipeline from process settings."""
    settings = get_settings()
    alerts = AlertController(
        notifier=build_notifier(settings),
        cooldown_seconds=settings.alert_cooldown_seconds,
        inflight_guard=settings.alert_inflight_guard,
    )
    return IngestPipeline(
        store=ReadingStore(),
        deriver=StatusDeriver(),
        alerts=alerts,
        broadcaster=Broadcaster(),
    )

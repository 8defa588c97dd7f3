"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


SENSOR_DATA_EVENT = "sensor-data"


class TempLevel(str, Enum):
    """Temperature classification attached to every reading."""

    hot = "hot"
    cold = "cold"
    normal = "normal"


class DayOrNight(str, Enum):
    """Light classification derived from the LDR percentage."""

    day = "day"
    night = "night"
    unknown = "unknown"


class DeviceStatus(BaseModel):
    """Derived summary embedded in a reading."""

    model_config = ConfigDict(populate_by_name=True)

    temp_level: TempLevel = Field(default=TempLevel.normal, alias="tempLevel")
    day_or_night: DayOrNight = Field(default=DayOrNight.unknown, alias="dayOrNight")


class Reading(BaseModel):
    """A processed reading: raw sensor fields plus server-assigned metadata.

    Raw fields are kept as pydantic extras so they are passed through exactly
    as the device sent them.
    """

    model_config = ConfigDict(extra="allow")

    received_at: datetime = Field(..., alias="receivedAt")
    status: DeviceStatus

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready mapping as sent to observers and API clients."""
        return self.model_dump(mode="json", by_alias=True)


class IngestResponse(BaseModel):
    """Acknowledgment returned by the ingest endpoint."""

    ok: bool
    error: Optional[str] = None


class AlertStatus(BaseModel):
    """Snapshot of the alert controller state."""

    model_config = ConfigDict(populate_by_name=True)

    alert_sent: bool = Field(..., alias="alertSent")
    last_alert_time: Optional[datetime] = Field(default=None, alias="lastAlertTime")
    in_flight: int = Field(default=0, ge=0, alias="inFlight")
    cooldown_seconds: float = Field(default=0.0, ge=0, alias="cooldownSeconds")
    inflight_guard: bool = Field(default=False, alias="inflightGuard")
    window_min: float = Field(..., alias="windowMin")
    window_max: float = Field(..., alias="windowMax")


class BroadcastMessage(BaseModel):
    """Envelope pushed to every connected observer."""

    event: str = SENSOR_DATA_EVENT
    data: Dict[str, Any]

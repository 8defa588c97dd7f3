"""Exception taxonomy for telemetry processing."""

from __future__ import annotations


class TelemetryError(Exception):
    """Base class for errors raised while handling telemetry."""


class PayloadValidationError(TelemetryError, ValueError):
    """The ingest payload is not a JSON object."""


class DeliveryError(TelemetryError):
    """A notification could not be delivered."""


class InternalError(TelemetryError):
    """Unexpected failure while processing a reading."""

"""Status derivation for incoming readings."""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional

from app.schemas import DayOrNight, DeviceStatus, TempLevel

TEMPERATURE_KEY = "ds18b20_temp"
LEGACY_TEMPERATURE_KEY = "temperature"
LIGHT_KEY = "ldr_percent"

HOT_ABOVE = 26.0
COLD_BELOW = 19.0
DAYLIGHT_ABOVE = 40.0


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed):
        return None
    return parsed


def resolve_temperature(reading: Mapping[str, Any]) -> Optional[float]:
    """Return the reading's temperature, or ``None`` when absent or unparsable.

    ``ds18b20_temp`` wins over the legacy ``temperature`` key whenever it is
    present, even if its value turns out to be unparsable.
    """
    raw = reading.get(TEMPERATURE_KEY)
    if raw is None:
        raw = reading.get(LEGACY_TEMPERATURE_KEY)
    return _to_float(raw)


def classify_temperature(temperature: Optional[float]) -> TempLevel:
    if temperature is None:
        return TempLevel.normal
    if temperature > HOT_ABOVE:
        return TempLevel.hot
    if temperature < COLD_BELOW:
        return TempLevel.cold
    return TempLevel.normal


def classify_light(reading: Mapping[str, Any]) -> DayOrNight:
    raw = reading.get(LIGHT_KEY)
    if raw is None:
        return DayOrNight.unknown
    # Bools count as 0/1 here, unlike temperature.
    percent = float(raw) if isinstance(raw, bool) else _to_float(raw)
    if percent is not None and percent > DAYLIGHT_ABOVE:
        return DayOrNight.day
    return DayOrNight.night


class StatusDeriver:
    """Pure mapping from raw sensor fields to a :class:`DeviceStatus`."""

    def derive(self, reading: Mapping[str, Any]) -> DeviceStatus:
        return DeviceStatus(
            temp_level=classify_temperature(resolve_temperature(reading)),
            day_or_night=classify_light(reading),
        )

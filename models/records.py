"""Domain records stored by the telemetry database."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Microcontroller:
    """A microcontroller unit, identified by its zero-based index in the fleet."""

    id: int


@dataclass(frozen=True, slots=True)
class Sensor:
    """A sensor attached to one microcontroller; ``s_id`` is local to ``m_id``."""

    m_id: int
    s_id: int


@dataclass(slots=True)
class SensorReading:
    """A single time-stamped measurement reported by a sensor."""

    timepoint: datetime
    m_id: int
    s_id: int
    sensor_type: int
    sensor_data: int
    dummy: bool = False

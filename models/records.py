"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from enum import Enum


class SensorKind(str, Enum):
    """Sensor channels reported by the feeder hardware."""

    temperature = "temperature"
    ph = "pH"
    turbidity = "turbidity"


# Persistence and logging always walk the kinds in this order.
SENSOR_KINDS: tuple[SensorKind, ...] = (
    SensorKind.temperature,
    SensorKind.ph,
    SensorKind.turbidity,
)


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single reading captured from one inbound sensor message."""

    kind: SensorKind
    value: float
    date: date
    time: time

    @property
    def date_text(self) -> str:
        return self.date.isoformat()

    @property
    def time_text(self) -> str:
        return self.time.strftime("%H:%M:%S")

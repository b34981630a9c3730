"""In-memory latest sensor values and the pending feeding schedule."""

from __future__ import annotations

from threading import Lock

from app.schemas import FeedingSchedule, Quantity, SensorSnapshot


class LatestStateCache:
    """Lock-guarded snapshot shared by the ingestion and command paths.

    Readers always receive copies; every mutation is a single critical
    section so a sensor update and a schedule update never interleave.
    """

    def __init__(self) -> None:
        self._snapshot = SensorSnapshot()
        self._schedule = FeedingSchedule()
        self._lock = Lock()

    def update(self, temperature: float, ph: float, turbidity: float) -> SensorSnapshot:
        with self._lock:
            self._snapshot = SensorSnapshot(
                temperature=temperature, ph=ph, turbidity=turbidity
            )
            return self._snapshot.model_copy()

    def read(self) -> SensorSnapshot:
        with self._lock:
            return self._snapshot.model_copy()

    def has_data(self) -> bool:
        with self._lock:
            snap = self._snapshot
            return any(
                value is not None
                for value in (snap.temperature, snap.ph, snap.turbidity)
            )

    def set_schedule(self, time: str, quantity: Quantity) -> FeedingSchedule:
        with self._lock:
            self._schedule = FeedingSchedule(time=time, quantity=quantity)
            return self._schedule.model_copy()

    def read_schedule(self) -> FeedingSchedule:
        with self._lock:
            return self._schedule.model_copy()

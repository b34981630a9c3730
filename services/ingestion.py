"""Sensor message ingestion: validate, persist, cache and broadcast."""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from threading import Lock
from typing import Callable, Iterable, Optional, Set, Union

from pydantic import ValidationError

from app.schemas import SensorEnvelope, SensorPayload
from datastore.telemetry_store import TelemetryStore
from models.records import SENSOR_KINDS, SensorKind, SensorReading
from services.registry import ClientRegistry
from services.state import LatestStateCache

logger = logging.getLogger(__name__)


def _summarize_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


class IngestionPipeline:
    """Turns raw sensor-topic payloads into stored readings and client pushes."""

    def __init__(
        self,
        cache: LatestStateCache,
        store: TelemetryStore,
        registry: ClientRegistry,
        workers: int = 1,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.cache = cache
        self.store = store
        self.registry = registry
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="telemetry-store"
        )
        self._clock = clock or datetime.now
        self._pending: Set[Future[None]] = set()
        self._pending_lock = Lock()

    def on_sensor_message(self, raw_payload: Union[bytes, str]) -> None:
        try:
            data = json.loads(raw_payload)
        except ValueError as exc:
            logger.error("Error parsing sensor message", extra={"reason": str(exc)})
            return

        try:
            payload = SensorPayload.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Incomplete sensor data received: %r",
                data,
                extra={"reason": _summarize_errors(exc)},
            )
            return

        logger.info(
            "Received sensor data: pH=%s, turbidity=%s, temperature=%s",
            payload.ph,
            payload.turbidity,
            payload.temperature,
        )

        now = self._clock()
        values = {
            SensorKind.temperature: payload.temperature,
            SensorKind.ph: payload.ph,
            SensorKind.turbidity: payload.turbidity,
        }
        readings = [
            SensorReading(
                kind=kind,
                value=values[kind],
                date=now.date(),
                time=now.time().replace(microsecond=0),
            )
            for kind in SENSOR_KINDS
        ]
        self._submit(readings)

        snapshot = self.cache.update(
            temperature=payload.temperature,
            ph=payload.ph,
            turbidity=payload.turbidity,
        )
        self.registry.broadcast(SensorEnvelope(data=snapshot))

    def wait_for_pending(self, timeout: Optional[float] = None) -> None:
        """Block until persistence tasks submitted so far have finished."""
        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self, wait_for_pending: bool = True) -> None:
        """Stop the persistence workers, optionally letting queued inserts finish."""
        self.executor.shutdown(wait=wait_for_pending, cancel_futures=not wait_for_pending)

    def _submit(self, readings: Iterable[SensorReading]) -> None:
        try:
            future = self.executor.submit(self._persist_readings, list(readings))
        except RuntimeError:
            logger.error("Persistence workers are shut down; readings not stored")
            return
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._clear_future)

    def _clear_future(self, future: Future[None]) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _persist_readings(self, readings: list[SensorReading]) -> None:
        for reading in readings:
            try:
                self.store.insert(
                    reading.kind,
                    date=reading.date_text,
                    time=reading.time_text,
                    value=reading.value,
                )
            except Exception:
                logger.exception(
                    "Failed to store reading",
                    extra={"kind": reading.kind.value, "value": reading.value},
                )

from __future__ import annotations
import json
import logging
from collections import deque
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Deque, Dict, Optional

from pydantic import BaseModel, ValidationError

from models.records import SENSOR_KINDS, SensorKind
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_RETAINED_ROWS = 1000


class TelemetryRow(BaseModel):
    """Stored form of one timestamped reading."""

    date: str
    time: str
    value: float


class TelemetryStore:
    """Append-only reading log grouped by sensor kind.

    Each insert appends one JSON line to ``persistence_path``; the file is
    never rewritten. Only the most recent ``retain`` rows per kind are kept
    in memory for :meth:`rows`.
    """

    def __init__(
        self,
        persistence_path: Optional[Path] = None,
        retain: int = DEFAULT_RETAINED_ROWS,
    ) -> None:
        self._rows: Dict[SensorKind, Deque[TelemetryRow]] = {
            kind: deque(maxlen=retain) for kind in SENSOR_KINDS
        }
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, kind: SensorKind, date: str, time: str, value: float) -> None:
        """Append a reading; raises if it cannot be made durable."""
        kind = SensorKind(kind)
        row = TelemetryRow(date=date, time=time, value=value)
        with self._lock:
            self._append_line(kind, row)
            self._rows[kind].append(row)

    def rows(self, kind: SensorKind) -> list[TelemetryRow]:
        with self._lock:
            return [row.model_copy() for row in self._rows[SensorKind(kind)]]

    def count(self) -> int:
        with self._lock:
            return sum(len(rows) for rows in self._rows.values())

    def _append_line(self, kind: SensorKind, row: TelemetryRow) -> None:
        if not self.persistence_path:
            return
        record = {"kind": kind.value, **row.model_dump(mode="json")}
        with self.persistence_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, sort_keys=True) + "\n")

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            lines = self.persistence_path.read_text(encoding="utf-8").splitlines()
        except OSError:
            logger.warning(
                "Ignoring unreadable telemetry file %s", self.persistence_path
            )
            return

        skipped = 0
        for line in lines:
            if not line.strip():
                continue
            try:
                record = json.loads(line)
                kind = SensorKind(record.pop("kind"))
                row = TelemetryRow.model_validate(record)
            except (ValueError, KeyError, TypeError, AttributeError, ValidationError):
                skipped += 1
                continue
            self._rows[kind].append(row)

        if skipped:
            logger.warning(
                "Skipped %d malformed telemetry lines in %s",
                skipped,
                self.persistence_path,
            )


@lru_cache
def build_default_store(path: Optional[str] = None) -> TelemetryStore:
    settings = get_settings()
    store_path = settings.telemetry_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return TelemetryStore(persistence_path=persistence)

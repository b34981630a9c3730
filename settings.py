from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_BROKER_HOST_ENV = "MQTT_BROKER_HOST"
_BROKER_PORT_ENV = "MQTT_BROKER_PORT"
_SENSOR_TOPIC_ENV = "MQTT_SENSOR_TOPIC"
_CONTROL_TOPIC_ENV = "MQTT_CONTROL_TOPIC"
_CLIENT_ID_ENV = "MQTT_CLIENT_ID"
_KEEPALIVE_ENV = "MQTT_KEEPALIVE"
_BRIDGE_HOST_ENV = "BRIDGE_HOST"
_BRIDGE_PORT_ENV = "BRIDGE_PORT"
_TELEMETRY_PATH_ENV = "TELEMETRY_PERSISTENCE_PATH"
_WORKER_COUNT_ENV = "PERSISTENCE_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    broker_host: str
    broker_port: int
    sensor_topic: str
    control_topic: str
    client_id: str
    keepalive: int
    bridge_host: str
    bridge_port: int
    telemetry_persistence_path: Optional[str]
    persistence_workers: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        broker_host=_read_str_env(_BROKER_HOST_ENV, "localhost"),
        broker_port=_read_positive_int(_BROKER_PORT_ENV, 1883),
        sensor_topic=_read_str_env(_SENSOR_TOPIC_ENV, "sensor/data"),
        control_topic=_read_str_env(_CONTROL_TOPIC_ENV, "feeder/control"),
        client_id=_read_str_env(_CLIENT_ID_ENV, "aquafeed-bridge"),
        keepalive=_read_positive_int(_KEEPALIVE_ENV, 60),
        bridge_host=_read_str_env(_BRIDGE_HOST_ENV, "0.0.0.0"),
        bridge_port=_read_positive_int(_BRIDGE_PORT_ENV, 8081),
        telemetry_persistence_path=_read_optional_env(
            _TELEMETRY_PATH_ENV, "./tmp/telemetry.jsonl"
        ),
        persistence_workers=_read_positive_int(_WORKER_COUNT_ENV, 1),
        log_level=_read_log_level("INFO"),
    )

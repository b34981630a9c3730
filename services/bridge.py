"""Wiring of the cache, store, registry, pipeline, router and broker link."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from broker.mqtt_link import MqttBrokerLink
from datastore.telemetry_store import TelemetryStore, build_default_store
from services.commands import CommandRouter, Publisher
from services.ingestion import IngestionPipeline
from services.registry import ClientRegistry
from services.state import LatestStateCache
from settings import get_settings

logger = logging.getLogger(__name__)


class FeederBridge:
    """Owns one instance of every bridge component and their lifecycle."""

    def __init__(
        self,
        store: TelemetryStore,
        control_topic: str,
        workers: int = 1,
        publisher: Optional[Publisher] = None,
    ) -> None:
        self.cache = LatestStateCache()
        self.store = store
        self.registry = ClientRegistry(self.cache)
        self.pipeline = IngestionPipeline(
            cache=self.cache, store=store, registry=self.registry, workers=workers
        )
        self.publisher = publisher
        self.router = CommandRouter(
            cache=self.cache, publisher=self, control_topic=control_topic
        )
        self.broker: Optional[MqttBrokerLink] = None

    def attach_broker(self, broker: MqttBrokerLink) -> None:
        self.broker = broker
        self.publisher = broker

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        if self.publisher is None:
            logger.error("No broker link attached; dropping publish", extra={"topic": topic})
            return
        self.publisher.publish(topic, payload)

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        self.registry.bind_loop(loop)
        if self.broker is not None:
            self.broker.start()
        logger.info("Bridge started")

    def shutdown(self) -> None:
        """Stop the broker link and let queued persistence finish."""
        if self.broker is not None:
            self.broker.stop()
        self.pipeline.shutdown(wait_for_pending=True)
        logger.info("Bridge stopped")


@lru_cache
def build_default_bridge() -> FeederBridge:
    """Factory that wires the bridge from environment settings."""
    settings = get_settings()
    bridge = FeederBridge(
        store=build_default_store(),
        control_topic=settings.control_topic,
        workers=settings.persistence_workers,
    )
    bridge.attach_broker(
        MqttBrokerLink(
            host=settings.broker_host,
            port=settings.broker_port,
            sensor_topic=settings.sensor_topic,
            control_topic=settings.control_topic,
            client_id=settings.client_id,
            keepalive=settings.keepalive,
            on_sensor_message=bridge.pipeline.on_sensor_message,
        )
    )
    return bridge

"""paho-mqtt adapter for the sensor and feed-control topics."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)


class MqttBrokerLink:
    """Threaded paho-mqtt client that feeds sensor payloads to a callback.

    Publishing is best-effort (QoS 0). Connection problems are logged and
    left to paho's own reconnect loop; nothing here raises into the caller
    once :meth:`start` has returned.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sensor_topic: str,
        control_topic: str,
        on_sensor_message: Callable[[bytes], None],
        client_id: str = "",
        keepalive: int = 60,
    ) -> None:
        self.host = host
        self.port = port
        self.sensor_topic = sensor_topic
        self.control_topic = control_topic
        self.client_id = client_id
        self.keepalive = keepalive
        self._on_sensor_message = on_sensor_message
        self._client: Optional[mqtt.Client] = None

    @property
    def is_running(self) -> bool:
        return self._client is not None

    def start(self) -> None:
        """Connect in the background and subscribe once the broker accepts."""
        self.stop()
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
        )
        client.enable_logger(logger)
        client.on_connect = self._handle_connect
        client.on_subscribe = self._handle_subscribe
        client.on_message = self._handle_message
        client.on_disconnect = self._handle_disconnect

        try:
            client.connect_async(self.host, self.port, keepalive=self.keepalive)
            client.loop_start()
        except Exception:
            logger.exception("MQTT connection setup failed for %s:%s", self.host, self.port)
            return

        self._client = client
        logger.info("MQTT network loop started for %s:%s", self.host, self.port)

    def stop(self) -> None:
        client = self._client
        self._client = None
        if client is None:
            return
        try:
            client.disconnect()
        finally:
            client.loop_stop()
            logger.info("MQTT network loop stopped")

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        client = self._client
        if client is None:
            logger.error("MQTT client not running; dropping publish", extra={"topic": topic})
            return
        try:
            info = client.publish(topic, json.dumps(payload), qos=0)
        except Exception:
            logger.exception("MQTT publish failed", extra={"topic": topic})
            return
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error(
                "MQTT publish not accepted",
                extra={"topic": topic, "reason": mqtt.error_string(info.rc)},
            )

    def _handle_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connection error", extra={"reason": str(reason_code)})
            return
        logger.info("Connected to MQTT broker %s:%s", self.host, self.port)
        client.subscribe(self.sensor_topic, qos=0)

    def _handle_subscribe(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _mid: int,
        reason_codes: Any,
        _properties: Any,
    ) -> None:
        if any(code.is_failure for code in reason_codes):
            logger.error(
                "Failed to subscribe to sensor topic",
                extra={"topic": self.sensor_topic, "reason": ", ".join(map(str, reason_codes))},
            )
            return
        logger.info("Subscribed to MQTT topic", extra={"topic": self.sensor_topic})

    def _handle_message(
        self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage
    ) -> None:
        if not mqtt.topic_matches_sub(self.sensor_topic, msg.topic):
            logger.debug("Ignoring message on unexpected topic", extra={"topic": msg.topic})
            return
        try:
            self._on_sensor_message(msg.payload)
        except Exception:
            logger.exception("Sensor message handler failed", extra={"topic": msg.topic})

    def _handle_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._client is not None:
            logger.warning("MQTT disconnected", extra={"reason": str(reason_code)})

"""Feeding commands received from UI clients."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Protocol, Union

from pydantic import ValidationError

from app.schemas import CommandReply, InstantFeedCommand, ScheduledFeedRequest
from services.registry import ClientConnection, describe
from services.state import LatestStateCache

logger = logging.getLogger(__name__)

INSTANT_FEED_REPLY = "Instant feeding triggered"
SCHEDULE_REPLY = "Feeding schedule received successfully"


def _reject_constant(token: str) -> Any:
    raise ValueError(f"non-standard JSON constant {token}")


class Publisher(Protocol):
    def publish(self, topic: str, payload: Dict[str, Any]) -> None: ...


class CommandRouter:
    """Validates client feeding requests and forwards them to the feeder."""

    def __init__(
        self,
        cache: LatestStateCache,
        publisher: Publisher,
        control_topic: str,
    ) -> None:
        self.cache = cache
        self.publisher = publisher
        self.control_topic = control_topic

    async def on_client_message(
        self, conn: ClientConnection, raw_payload: Union[str, bytes]
    ) -> None:
        try:
            data = json.loads(raw_payload, parse_constant=_reject_constant)
        except ValueError as exc:
            logger.error(
                "Error parsing client message",
                extra={"client": describe(conn), "reason": str(exc)},
            )
            return

        if not isinstance(data, dict):
            logger.warning("Unknown or incomplete message: %r", data)
            return

        command = self._instant_feed(data)
        if command is not None:
            logger.info(
                "Instant feed request", extra={"quantity": command.quantity}
            )
            payload = command.model_dump()
            self.publisher.publish(self.control_topic, payload)
            logger.info("Published instant feed: %s", json.dumps(payload))
            await self._reply(conn, INSTANT_FEED_REPLY)
            return

        request = self._scheduled_feed(data)
        if request is not None:
            logger.info(
                "Received feeding schedule",
                extra={"feed_time": request.time, "quantity": request.quantity},
            )
            schedule = self.cache.set_schedule(request.time, request.quantity)
            payload = schedule.model_dump()
            self.publisher.publish(self.control_topic, payload)
            logger.info("Published scheduled feed: %s", json.dumps(payload))
            await self._reply(conn, SCHEDULE_REPLY)
            return

        logger.warning("Unknown or incomplete message: %r", data)

    @staticmethod
    def _instant_feed(data: Dict[str, Any]) -> Optional[InstantFeedCommand]:
        if data.get("feed_now") is not True or data.get("quantity") is None:
            return None
        try:
            return InstantFeedCommand(quantity=data["quantity"])
        except ValidationError:
            return None

    @staticmethod
    def _scheduled_feed(data: Dict[str, Any]) -> Optional[ScheduledFeedRequest]:
        if data.get("time") is None or data.get("quantity") is None:
            return None
        try:
            return ScheduledFeedRequest(time=data["time"], quantity=data["quantity"])
        except ValidationError:
            return None

    @staticmethod
    async def _reply(conn: ClientConnection, message: str) -> None:
        reply = CommandReply(message=message)
        await conn.send_text(reply.model_dump_json())

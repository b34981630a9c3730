from __future__ import annotations

import json
import logging
from typing import Any, Dict

import pytest
from fastapi.websockets import WebSocketState

from services.commands import CommandRouter
from services.state import LatestStateCache

CONTROL_TOPIC = "feeder/control"


class FakeConnection:
    def __init__(self) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(json.loads(data))


class RecordingPublisher:
    def __init__(self) -> None:
        self.published: list[tuple[str, Dict[str, Any]]] = []

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        self.published.append((topic, payload))


@pytest.fixture()
def cache() -> LatestStateCache:
    return LatestStateCache()


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def router(cache, publisher) -> CommandRouter:
    return CommandRouter(cache=cache, publisher=publisher, control_topic=CONTROL_TOPIC)


@pytest.mark.asyncio
async def test_instant_feed_publishes_and_replies_to_sender(router, publisher, cache) -> None:
    sender, bystander = FakeConnection(), FakeConnection()

    await router.on_client_message(sender, '{"feed_now": true, "quantity": 5}')

    assert publisher.published == [(CONTROL_TOPIC, {"feed_now": True, "quantity": 5})]
    assert sender.sent == [{"status": "success", "message": "Instant feeding triggered"}]
    assert bystander.sent == []
    assert cache.read_schedule().time is None


@pytest.mark.asyncio
async def test_instant_feed_takes_precedence_over_schedule(router, publisher, cache) -> None:
    sender = FakeConnection()

    await router.on_client_message(
        sender, '{"feed_now": true, "quantity": 3, "time": "08:00"}'
    )

    assert publisher.published == [(CONTROL_TOPIC, {"feed_now": True, "quantity": 3})]
    assert sender.sent[0]["message"] == "Instant feeding triggered"
    assert cache.read_schedule().time is None


@pytest.mark.asyncio
async def test_instant_feed_accepts_zero_quantity(router, publisher) -> None:
    sender = FakeConnection()

    await router.on_client_message(sender, '{"feed_now": true, "quantity": 0}')

    assert publisher.published == [(CONTROL_TOPIC, {"feed_now": True, "quantity": 0})]
    assert len(sender.sent) == 1


@pytest.mark.asyncio
async def test_scheduled_feed_overwrites_schedule(router, publisher, cache) -> None:
    sender = FakeConnection()

    await router.on_client_message(sender, '{"time": "08:00", "quantity": 10}')
    await router.on_client_message(sender, '{"time": "19:45", "quantity": 2.5}')

    assert cache.read_schedule().model_dump() == {"time": "19:45", "quantity": 2.5}
    assert publisher.published == [
        (CONTROL_TOPIC, {"time": "08:00", "quantity": 10}),
        (CONTROL_TOPIC, {"time": "19:45", "quantity": 2.5}),
    ]
    assert sender.sent == [
        {"status": "success", "message": "Feeding schedule received successfully"},
        {"status": "success", "message": "Feeding schedule received successfully"},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        '{"feed_now": true}',
        '{"feed_now": "yes", "quantity": 5}',
        '{"time": "08:00"}',
        '{"quantity": 10}',
        '{"time": "", "quantity": 10}',
        '{"time": "08:00", "quantity": "lots"}',
        '{"feed_now": true, "quantity": true}',
        '["feed_now", 5]',
    ],
)
async def test_unrecognised_message_is_ignored(router, publisher, cache, payload, caplog) -> None:
    sender = FakeConnection()

    with caplog.at_level(logging.WARNING):
        await router.on_client_message(sender, payload)

    assert publisher.published == []
    assert sender.sent == []
    assert cache.read_schedule().time is None
    assert any("Unknown or incomplete message" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        "{feed_now: true",
        '{"feed_now": true, "quantity": NaN}',
        '{"time": "08:00", "quantity": Infinity}',
        '{"time": "08:00", "quantity": -Infinity}',
    ],
)
async def test_unparseable_message_is_ignored(router, publisher, cache, payload, caplog) -> None:
    sender = FakeConnection()

    with caplog.at_level(logging.ERROR):
        await router.on_client_message(sender, payload)

    assert publisher.published == []
    assert sender.sent == []
    assert cache.read_schedule().quantity is None
    assert any("Error parsing client message" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize(
    "data",
    [
        {"feed_now": True, "time": "08:00", "quantity": float("nan")},
        {"feed_now": True, "time": "08:00", "quantity": float("-inf")},
    ],
)
def test_non_finite_quantities_never_validate(router, data) -> None:
    assert router._instant_feed(data) is None
    assert router._scheduled_feed(data) is None

from typing import Any, Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.telemetry_store import TelemetryStore
from models.records import SensorKind
from services.bridge import FeederBridge

SENSOR_MESSAGE = b'{"temperature": 24.5, "pH": 7.1, "turbidity": 3.2}'


class RecordingPublisher:
    def __init__(self) -> None:
        self.published: List[tuple[str, Dict[str, Any]]] = []

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        self.published.append((topic, payload))


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def bridge(tmp_path, publisher) -> FeederBridge:
    return FeederBridge(
        store=TelemetryStore(persistence_path=tmp_path / "telemetry.jsonl"),
        control_topic="feeder/control",
        publisher=publisher,
    )


@pytest.fixture
def api_client(bridge: FeederBridge, monkeypatch) -> Iterator[TestClient]:
    def build_test_bridge() -> FeederBridge:
        return bridge

    build_test_bridge.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_bridge", build_test_bridge)
    monkeypatch.setattr("app.api.build_default_bridge", build_test_bridge)
    monkeypatch.setattr("app.ws.build_default_bridge", build_test_bridge)

    app = create_app()
    with TestClient(app) as client:
        yield client


def test_health_and_root(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_state_reports_empty_snapshot(api_client: TestClient) -> None:
    response = api_client.get("/state")

    assert response.status_code == 200
    assert response.json() == {
        "sensor": {"temperature": None, "pH": None, "turbidity": None},
        "schedule": {"time": None, "quantity": None},
        "clients": 0,
    }


def test_instant_feed_over_websocket(api_client: TestClient, publisher) -> None:
    with api_client.websocket_connect("/") as ws:
        ws.send_json({"feed_now": True, "quantity": 5})
        reply = ws.receive_json()

    assert reply == {"status": "success", "message": "Instant feeding triggered"}
    assert publisher.published == [("feeder/control", {"feed_now": True, "quantity": 5})]


def test_first_message_on_empty_cache_is_command_reply(api_client: TestClient) -> None:
    with api_client.websocket_connect("/") as ws:
        ws.send_text("not json at all")
        ws.send_json({"time": "08:00", "quantity": 10})
        reply = ws.receive_json()

    assert reply == {"status": "success", "message": "Feeding schedule received successfully"}
    state = api_client.get("/state").json()
    assert state["schedule"] == {"time": "08:00", "quantity": 10}


def test_new_client_is_caught_up_then_receives_broadcasts(
    api_client: TestClient, bridge: FeederBridge
) -> None:
    bridge.pipeline.on_sensor_message(SENSOR_MESSAGE)

    with api_client.websocket_connect("/") as ws:
        catch_up = ws.receive_json()
        assert catch_up == {
            "type": "sensor",
            "data": {"temperature": 24.5, "pH": 7.1, "turbidity": 3.2},
        }

        bridge.pipeline.on_sensor_message(
            b'{"temperature": 26.0, "pH": 6.5, "turbidity": 4.0}'
        )
        update = ws.receive_json()

    assert update["data"] == {"temperature": 26.0, "pH": 6.5, "turbidity": 4.0}

    bridge.pipeline.wait_for_pending(timeout=5)
    assert [row.value for row in bridge.store.rows(SensorKind.ph)] == [7.1, 6.5]


def test_broadcast_reaches_every_connected_client(
    api_client: TestClient, bridge: FeederBridge
) -> None:
    with api_client.websocket_connect("/") as first, api_client.websocket_connect("/") as second:
        # A reply proves each socket has been registered.
        for ws in (first, second):
            ws.send_json({"time": "07:00", "quantity": 1})
            ws.receive_json()
        assert api_client.get("/state").json()["clients"] == 2

        bridge.pipeline.on_sensor_message(SENSOR_MESSAGE)

        assert first.receive_json()["type"] == "sensor"
        assert second.receive_json()["type"] == "sensor"

    assert bridge.registry.client_count() == 0

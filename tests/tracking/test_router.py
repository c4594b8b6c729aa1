"""
HTTP and WebSocket tests for the tracking router.
"""

import json
import random

import pytest
from fastapi.testclient import TestClient

from main import app
from tracking_service.models import TrackingSession, get_tracking_session

BASE = "/api/tracking"


@pytest.fixture
def tracker():
    return TrackingSession(tick_interval=0.02, rng=random.Random(11))


@pytest.fixture
def client(tracker):
    app.dependency_overrides[get_tracking_session] = lambda: tracker
    with TestClient(app) as test_client:
        yield test_client
        test_client.post(f"{BASE}/dispose")
    app.dependency_overrides.clear()


def test_initialize_requires_key(client):
    response = client.post(f"{BASE}/initialize", json={})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "InvalidCredential"
    assert body["error"] == "SDK key is required"


def test_initialize_without_body(client):
    response = client.post(f"{BASE}/initialize")

    assert response.status_code == 400
    assert response.json()["error_code"] == "InvalidCredential"


@pytest.mark.parametrize("content", ['["sdkKey"]', '"key123"', '{"sdkKey": 42}'])
def test_initialize_rejects_non_object_arguments(client, tracker, content):
    response = client.post(
        f"{BASE}/initialize",
        content=content,
        headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "InvalidCredential"
    assert body["details"] == {"method": "initialize"}
    assert tracker.state.value == "uninitialized"


def test_start_tracking_rejects_list_arguments(client):
    client.post(f"{BASE}/initialize", json={"sdkKey": "key123"})

    response = client.post(
        f"{BASE}/startTracking",
        content='["squat", "Squats"]',
        headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "InvalidExercise"


def test_malformed_json_body(client):
    response = client.post(
        f"{BASE}/initialize",
        content="{bad json",
        headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "InvalidArguments"
    assert body["error"] == "Invalid request body"
    assert body["details"]["errors"][0]["type"] == "json_invalid"


def test_unknown_command_is_not_implemented(client):
    response = client.post(f"{BASE}/recalibrate", json={})

    assert response.status_code == 501
    body = response.json()
    assert body["error_code"] == "NotImplemented"
    assert body["details"] == {"method": "recalibrate"}


def test_start_before_initialize(client):
    response = client.post(f"{BASE}/startTracking", json={
        "exerciseType": "squat",
        "exerciseName": "Squats"
    })

    assert response.status_code == 400
    assert response.json()["error_code"] == "NotInitialized"


def test_command_flow(client, tracker):
    assert client.post(f"{BASE}/initialize", json={"sdkKey": "key123"}).json()["data"] is True

    started = client.post(f"{BASE}/startTracking", json={
        "exerciseType": "squat",
        "exerciseName": "Squats"
    })
    assert started.status_code == 200
    assert started.json()["data"] is True

    status = client.get(f"{BASE}/status").json()["data"]
    assert status["state"] == "tracking"
    assert status["exercise"] == "Squats"

    assert client.post(f"{BASE}/stopTracking").json()["data"] is True

    results = client.post(f"{BASE}/getResults").json()
    assert results["success"] is True
    assert set(results["data"]) == {"repetitions", "accuracy", "duration", "feedback", "analytics"}
    assert results["data"]["analytics"]["exercise"] is None

    first = client.post(f"{BASE}/dispose")
    second = client.post(f"{BASE}/dispose")
    assert first.json()["data"] is True
    assert second.json()["data"] is True


def unsubscribe_and_wait_for_close(websocket):
    """Unsubscribe and read until the server closes, so teardown is finished."""
    websocket.send_json({"type": "unsubscribe"})
    messages = []
    while True:
        message = websocket.receive()
        if message["type"] == "websocket.close":
            return [m["type"] for m in messages], message["code"]
        messages.append(json.loads(message["text"]))


def test_stream_delivers_tick_updates(client):
    client.post(f"{BASE}/initialize", json={"sdkKey": "key123"})

    with client.websocket_connect(f"{BASE}/ws/updates") as websocket:
        hello = websocket.receive_json()
        assert hello["type"] == "subscribed"

        client.post(f"{BASE}/startTracking", json={
            "exerciseType": "squat",
            "exerciseName": "Squats"
        })

        message = websocket.receive_json()
        assert message["type"] == "tick_update"
        payload = message["payload"]
        assert payload["isTracking"] is True
        assert len(payload["keypoints"]) == 17
        assert payload["keypoints"][13]["name"] == "leftKnee"
        assert 0.0 < payload["accuracy"] <= 0.95

        client.post(f"{BASE}/stopTracking")
        types, code = unsubscribe_and_wait_for_close(websocket)

    assert "unsubscribed" in types
    assert code == 1000


def test_stream_answers_ping(client):
    with client.websocket_connect(f"{BASE}/ws/updates") as websocket:
        assert websocket.receive_json()["type"] == "subscribed"

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"

        websocket.send_text("not json")
        error = websocket.receive_json()
        assert error["type"] == "error"
        assert error["payload"] == {"error": "Invalid JSON"}

        types, code = unsubscribe_and_wait_for_close(websocket)

    assert types == ["unsubscribed"]
    assert code == 1000


def test_health_and_stats(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"

    stats = client.get("/stats").json()
    assert "tracker" in stats
    assert "websocket" in stats

"""Tests for the webhook app."""

import pytest
from fastapi.testclient import TestClient

from courier.webhook import create_app


class RecordingHandler:
    auto_fetch = None

    def __init__(self):
        self.messages = []

    async def handle_message(self, message):
        self.messages.append(message)
        return True


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def client(handler):
    return TestClient(create_app(handler, verify_token="secret"))


def test_verification_echoes_challenge(client):
    response = client.get(
        "/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "secret", "hub.challenge": "1158201444"},
    )

    assert response.status_code == 200
    assert response.text == "1158201444"


def test_verification_rejects_wrong_token(client):
    response = client.get(
        "/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "1"},
    )

    assert response.status_code == 403


def test_incoming_message_dispatched(client, handler):
    payload = {
        "entry": [
            {
                "changes": [
                    {
                        "value": {
                            "messages": [
                                {"from": "123", "id": "m1", "type": "text", "text": {"body": ".ping"}}
                            ]
                        }
                    }
                ]
            }
        ]
    }

    response = client.post("/webhook", json=payload)

    assert response.json() == {"status": "ok", "received": 1}
    assert handler.messages[0].chat_id == "123@c.us"
    assert handler.messages[0].body == ".ping"


def test_invalid_json_rejected(client):
    response = client.post("/webhook", content=b"{oops", headers={"content-type": "application/json"})

    assert response.status_code == 400


def test_health_without_auto_fetch(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["auto_fetch"] == {"mappings": 0, "active": 0, "monitors": 0}

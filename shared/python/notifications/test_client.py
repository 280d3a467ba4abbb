"""Tests for NotificationClient."""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notifications import CHANNEL, EventType, NotificationClient


@pytest.fixture
def mock_redis():
    redis = MagicMock()
    redis.publish = AsyncMock()
    redis.aclose = AsyncMock()
    return redis


@pytest.fixture
def client(mock_redis):
    with patch("notifications.client.Redis.from_url", return_value=mock_redis):
        yield NotificationClient("courier", "redis://localhost")


def published(mock_redis) -> dict:
    channel, payload = mock_redis.publish.call_args[0]
    assert channel == CHANNEL
    return json.loads(payload)


@pytest.mark.asyncio
async def test_emit_publishes_event(client, mock_redis):
    assert await client.emit("test.event", {"foo": "bar"}, priority="high", tags=["test"])

    event = published(mock_redis)
    assert event["service"] == "courier"
    assert event["type"] == "test.event"
    assert event["data"] == {"foo": "bar"}
    assert event["priority"] == "high"
    assert event["tags"] == ["test"]
    assert "timestamp" in event


@pytest.mark.asyncio
async def test_emit_defaults(client, mock_redis):
    await client.emit("event.type", {})

    event = published(mock_redis)
    assert event["priority"] == "default"
    assert event["tags"] == []


@pytest.mark.asyncio
async def test_invalid_priority_is_dropped(client, mock_redis):
    assert await client.emit("test", {}, priority="invalid") is False
    assert not mock_redis.publish.called


@pytest.mark.asyncio
async def test_redis_failure_is_swallowed(client, mock_redis):
    mock_redis.publish.side_effect = ConnectionError("Redis connection failed")

    assert await client.emit("test.event", {}) is False


@pytest.mark.asyncio
async def test_folder_paused_requires_action(client, mock_redis):
    await client.folder_paused("reports/team-a", "team_a", 3)

    event = published(mock_redis)
    assert event["type"] == EventType.FOLDER_PAUSED
    assert event["priority"] == "high"
    assert "action-required" in event["tags"]
    assert event["data"] == {"folder_id": "reports/team-a", "nickname": "team_a", "retry_count": 3}


@pytest.mark.asyncio
async def test_file_delivered_is_low_priority(client, mock_redis):
    await client.file_delivered("reports/team-a", "123@c.us", "week-12.xlsx")

    event = published(mock_redis)
    assert event["type"] == EventType.FILE_DELIVERED
    assert event["priority"] == "low"
    assert event["data"]["chat_id"] == "123@c.us"


@pytest.mark.asyncio
async def test_close_releases_connection(client, mock_redis):
    await client.emit("test", {})

    await client.close()

    mock_redis.aclose.assert_awaited_once()
    assert client.redis is None

"""Tests for the health staleness check and its HTTP endpoint."""

import time
from http.server import HTTPServer
from threading import Thread

import httpx
import pytest

from courier import metrics

START = 1_000_000.0


@pytest.fixture
def health(monkeypatch):
    """Started at START with a 60s interval (180s staleness) and one live monitor."""
    monkeypatch.setattr(metrics, "_started_time", START)
    monkeypatch.setattr(metrics, "_stale_after_seconds", 180.0)
    monkeypatch.setattr(metrics, "_last_poll_time", 0.0)
    monkeypatch.setattr(metrics, "_monitor_count", 1)
    return metrics


def test_healthy_without_monitors(health, monkeypatch):
    monkeypatch.setattr(metrics, "_monitor_count", 0)

    healthy, message = metrics.check_monitor_activity(now=START + 10_000)

    assert healthy
    assert "No active monitors" in message


def test_grace_period_after_start(health):
    healthy, message = metrics.check_monitor_activity(now=START + 100)

    assert healthy
    assert "grace period" in message


def test_no_poll_after_grace_period(health):
    healthy, message = metrics.check_monitor_activity(now=START + 200)

    assert not healthy
    assert "No poll cycle completed" in message


def test_recent_poll_is_healthy(health, monkeypatch):
    monkeypatch.setattr(metrics, "_last_poll_time", START + 150)

    healthy, message = metrics.check_monitor_activity(now=START + 300)

    assert healthy
    assert "Last poll 150s ago, 1 active monitors" in message


def test_stale_poll_is_unhealthy(health, monkeypatch):
    monkeypatch.setattr(metrics, "_last_poll_time", START + 100)

    healthy, message = metrics.check_monitor_activity(now=START + 400)

    assert not healthy
    assert "threshold: 180s" in message


def test_mark_started_threshold(monkeypatch):
    monkeypatch.setattr(metrics, "_started_time", 0.0)
    monkeypatch.setattr(metrics, "_stale_after_seconds", 900.0)

    metrics.mark_started(300)
    assert metrics._stale_after_seconds == 900

    metrics.mark_started(5)
    assert metrics._stale_after_seconds == 60
    assert metrics._started_time > 0


def test_record_poll_and_monitor_count_feed_health(health):
    metrics.set_active_monitors(2)
    metrics.record_poll("unchanged", 0.2)

    healthy, message = metrics.check_monitor_activity()

    assert healthy
    assert "2 active monitors" in message


@pytest.fixture
def health_server():
    server = HTTPServer(("127.0.0.1", 0), metrics.HealthCheckHandler)
    thread = Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_health_endpoint_status_codes(health, health_server, monkeypatch):
    monkeypatch.setattr(metrics, "_started_time", time.time())
    with httpx.Client(base_url=health_server, trust_env=False) as http:
        assert http.get("/health").status_code == 200

        monkeypatch.setattr(metrics, "_started_time", 1.0)
        response = http.get("/healthz")
        assert response.status_code == 503
        assert response.text.startswith("UNHEALTHY")

        assert http.get("/metrics").status_code == 404

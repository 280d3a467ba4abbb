"""
Prometheus Metrics for the Courier Bot

Tracks key operational metrics:
- Poll cycles per outcome and their duration
- Deliveries and auto-pauses
- Active folder monitors
- Persistence failures
- Command usage

Metrics are exposed on METRICS_PORT (/metrics endpoint), health on HEALTH_PORT.
"""

import logging
import time
from http.server import HTTPServer, BaseHTTPRequestHandler
from threading import Thread
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, Info, start_http_server

from . import __version__

logger = logging.getLogger(__name__)

# Activity tracking for health checks
_last_poll_time: float = 0.0
_started_time: float = 0.0
_stale_after_seconds: float = 900.0
_monitor_count: int = 0

service_info = Info("courier_bot", "Courier Bot Service Information")
service_info.info(
    {
        "version": __version__,
        "service": "courier",
        "description": "Folder monitoring and spreadsheet delivery to WhatsApp chats",
    }
)

polls_total = Counter(
    "autofetch_polls_total",
    "Total folder poll cycles",
    ["outcome"],  # skipped, empty, unchanged, delivered, failed, paused
)

poll_duration = Histogram(
    "autofetch_poll_duration_seconds",
    "Time taken for one folder poll cycle",
    buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120],
)

deliveries_total = Counter(
    "autofetch_deliveries_total",
    "Total file deliveries",
    ["status"],  # success, download_failed, send_failed, error
)

auto_pauses_total = Counter(
    "autofetch_auto_pauses_total",
    "Folders paused after exhausting the retry budget",
)

active_monitors = Gauge(
    "autofetch_active_monitors",
    "Number of folders with a live polling task",
)

persist_failures_total = Counter(
    "autofetch_persist_failures_total",
    "Failed writes of the mapping document",
)

commands_total = Counter(
    "bot_commands_total",
    "Commands handled",
    ["command", "status"],  # status: success, error, denied
)


class HealthCheckHandler(BaseHTTPRequestHandler):
    """HTTP handler for health check endpoint."""

    def log_message(self, format, *args):
        """Suppress default HTTP logging."""
        pass

    def do_GET(self):
        if self.path == "/health" or self.path == "/healthz":
            is_healthy, message = check_monitor_activity()
            self.send_response(200 if is_healthy else 503)
            self.send_header("Content-Type", "text/plain")
            self.end_headers()
            self.wfile.write(message.encode())
        else:
            self.send_response(404)
            self.end_headers()


def check_monitor_activity(now: Optional[float] = None) -> tuple[bool, str]:
    """
    Check that poll cycles are still running.

    Healthy while no monitor is live, during the startup grace period, or when
    the last poll finished within the staleness threshold.

    Returns:
        Tuple of (is_healthy: bool, message: str)
    """
    now = now if now is not None else time.time()
    monitors = _monitor_count

    if monitors == 0:
        return True, "OK: No active monitors"

    if _started_time > 0 and now - _started_time < _stale_after_seconds:
        return True, f"OK: Started {int(now - _started_time)}s ago (grace period)"

    if _last_poll_time == 0:
        return False, "UNHEALTHY: No poll cycle completed since startup"

    age = now - _last_poll_time
    if age > _stale_after_seconds:
        return False, f"UNHEALTHY: No poll in {int(age)}s (threshold: {int(_stale_after_seconds)}s)"

    return True, f"OK: Last poll {int(age)}s ago, {monitors} active monitors"


def mark_started(check_interval_seconds: float) -> None:
    """Mark the bot as started; a poll older than three intervals is stale."""
    global _started_time, _stale_after_seconds
    _started_time = time.time()
    _stale_after_seconds = max(check_interval_seconds * 3, 60.0)
    logger.info(f"Courier started, health staleness threshold: {int(_stale_after_seconds)}s")


class MetricsServer:
    """
    Prometheus metrics HTTP server with health check endpoint.

    Exposes:
    - /metrics: Prometheus metrics
    - /health: Health check (503 when poll cycles have stalled)
    """

    def __init__(self, port: int = 8001, health_port: int = 8002):
        self.port = port
        self.health_port = health_port
        self._server_started = False
        self._health_server: Optional[HTTPServer] = None
        self._health_thread: Optional[Thread] = None

    def start(self):
        """Start Prometheus metrics HTTP server and health check server."""
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port)
            logger.info(f"Prometheus metrics server started on port {self.port}")

            self._health_server = HTTPServer(("0.0.0.0", self.health_port), HealthCheckHandler)
            self._health_thread = Thread(target=self._health_server.serve_forever, daemon=True)
            self._health_thread.start()
            logger.info(f"Health check server started on port {self.health_port}")

            self._server_started = True
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    def stop(self):
        if self._health_server:
            self._health_server.shutdown()
            self._health_server = None
        self._server_started = False


# Helper functions for common metric updates


def record_poll(outcome: str, duration_seconds: float):
    global _last_poll_time
    _last_poll_time = time.time()
    polls_total.labels(outcome=outcome).inc()
    poll_duration.observe(duration_seconds)


def record_delivery(status: str):
    deliveries_total.labels(status=status).inc()


def record_auto_pause():
    auto_pauses_total.inc()


def record_persist_failure():
    persist_failures_total.inc()


def set_active_monitors(count: int):
    global _monitor_count
    _monitor_count = count
    active_monitors.set(count)


def record_command(command: str, status: str):
    commands_total.labels(command=command, status=status).inc()

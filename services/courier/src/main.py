"""
Courier Bot - Main Entry Point

Startup sequence:
1. Prometheus metrics + health servers
2. Redis notification client (optional, REDIS_URL)
3. MinIO storage backend (optional, MINIO_* credentials)
4. WhatsApp Cloud transport (optional, WHATSAPP_* credentials)
5. Owner map and auto-fetch mappings loaded from disk
6. Folder monitors started for every active mapping
7. Webhook server (uvicorn) dispatching commands

Without storage or transport credentials the bot still answers commands,
but monitors stay stopped until both are configured.

Shutdown (SIGTERM/SIGINT) runs cleanup in reverse order: webhook server,
folder monitors (in-flight polls finish and persist), HTTP/Redis clients,
metrics server.
"""

import asyncio
import sys
from typing import Optional

import uvicorn
from minio import Minio

from config.settings import settings
from notifications import NotificationClient
from observability import get_logger, setup_logging
from storage import JsonMappingStore, MinioStorageBackend
from utils import GracefulShutdown

from . import __version__
from .auto_fetch import AutoFetchManager
from .command_handler import CommandHandler
from .metrics import MetricsServer, mark_started
from .owner_manager import OwnerManager
from .webhook import create_app
from .whatsapp_cloud import WhatsAppCloudTransport

setup_logging(
    service_name="courier",
    level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT.lower() != "console",
)
logger = get_logger(__name__)


def build_storage_backend() -> Optional[MinioStorageBackend]:
    if not settings.has_storage_backend():
        logger.warning("MinIO credentials not configured, auto-fetch disabled")
        return None

    client = Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE,
    )
    logger.info(f"MinIO storage backend: {settings.MINIO_ENDPOINT}/{settings.MINIO_BUCKET_NAME}")
    return MinioStorageBackend(client, settings.MINIO_BUCKET_NAME, settings.get_spreadsheet_extensions())


def build_transport() -> Optional[WhatsAppCloudTransport]:
    if not settings.has_chat_transport():
        logger.warning("WhatsApp Cloud API credentials not configured, replies disabled")
        return None

    return WhatsAppCloudTransport(
        api_url=settings.WHATSAPP_API_URL,
        phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
        access_token=settings.WHATSAPP_ACCESS_TOKEN,
    )


async def main() -> None:
    logger.info(f"Starting {settings.BOT_NAME} (courier v{__version__})")

    shutdown = GracefulShutdown()
    shutdown.setup_handlers()

    try:
        metrics_server = MetricsServer(port=settings.METRICS_PORT, health_port=settings.HEALTH_PORT)
        metrics_server.start()
        shutdown.add_cleanup("metrics server", metrics_server.stop)

        notifier = None
        if settings.REDIS_URL:
            notifier = NotificationClient("courier", settings.REDIS_URL)
            shutdown.add_cleanup("notification client", notifier.close)

        storage = build_storage_backend()
        transport = build_transport()
        if transport:
            shutdown.add_cleanup("WhatsApp transport", transport.close)

        owners = OwnerManager(settings.OWNERS_STORAGE_FILE, settings.BOT_OWNER_ID)
        await owners.load()

        auto_fetch = None
        if settings.AUTOFETCH_ENABLED:
            auto_fetch = AutoFetchManager.from_settings(
                JsonMappingStore(settings.AUTOFETCH_STORAGE_FILE), settings, notifier=notifier
            )
            await auto_fetch.initialize(storage, transport)
            shutdown.add_cleanup("auto-fetch monitors", auto_fetch.close)
            mark_started(settings.check_interval_seconds)
        else:
            logger.info("Auto-fetch disabled by configuration")

        handler = CommandHandler(
            transport,
            owners,
            auto_fetch=auto_fetch,
            prefix=settings.COMMAND_PREFIX,
            bot_name=settings.BOT_NAME,
        )

        server = uvicorn.Server(
            uvicorn.Config(
                create_app(handler, settings.WHATSAPP_VERIFY_TOKEN),
                host=settings.WEBHOOK_HOST,
                port=settings.WEBHOOK_PORT,
                log_config=None,
            )
        )
        server_task = asyncio.create_task(server.serve(), name="webhook-server")

        async def stop_server():
            server.should_exit = True
            if not server_task.done():
                await server_task

        shutdown.add_cleanup("webhook server", stop_server)

        logger.info(f"Webhook listening on {settings.WEBHOOK_HOST}:{settings.WEBHOOK_PORT}")
        # uvicorn may capture SIGTERM itself; either path ends the run
        waiter = asyncio.create_task(shutdown.wait_for_shutdown())
        await asyncio.wait({server_task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        waiter.cancel()

    except Exception as e:
        logger.exception(f"Fatal error in courier bot: {e}")
        await shutdown.run_cleanup()
        sys.exit(1)

    logger.info("Shutting down gracefully...")
    await shutdown.run_cleanup()
    logger.info("Shutdown complete")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Service interrupted by user")


if __name__ == "__main__":
    run()

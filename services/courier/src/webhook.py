"""
Webhook Server

FastAPI app receiving WhatsApp Cloud API notifications:
- GET /webhook: subscription verification (echoes hub.challenge)
- POST /webhook: incoming messages, dispatched to the CommandHandler
- GET /health: auto-fetch status
"""

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from observability import get_logger

from . import __version__
from .capabilities import IncomingMessage
from .command_handler import CommandHandler
from .whatsapp_cloud import parse_webhook_messages

logger = get_logger(__name__)


def create_app(handler: CommandHandler, verify_token: str) -> FastAPI:
    """Build the webhook app around a command handler."""
    app = FastAPI(
        title="Courier Bot Webhook",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    @app.get("/webhook", response_class=PlainTextResponse)
    async def verify_subscription(
        mode: str = Query("", alias="hub.mode"),
        token: str = Query("", alias="hub.verify_token"),
        challenge: str = Query("", alias="hub.challenge"),
    ):
        if mode == "subscribe" and token == verify_token:
            logger.info("Webhook subscription verified")
            return challenge
        logger.warning("Webhook verification failed")
        raise HTTPException(status_code=403, detail="Verification failed")

    @app.post("/webhook")
    async def receive(request: Request, background_tasks: BackgroundTasks):
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON")

        messages = parse_webhook_messages(payload)
        for fields in messages:
            background_tasks.add_task(handler.handle_message, IncomingMessage(**fields))

        return {"status": "ok", "received": len(messages)}

    @app.get("/health")
    async def health():
        manager = handler.auto_fetch
        return {
            "status": "healthy",
            "service": "courier",
            "version": __version__,
            "auto_fetch": {
                "mappings": len(manager.list_mappings()) if manager else 0,
                "active": manager.active_count if manager else 0,
                "monitors": manager.monitor_count if manager else 0,
            },
        }

    return app

"""
WhatsApp Cloud API transport.

Implements the ChatTransport capability over the Graph HTTP API:
- send_text: POST /{phone_number_id}/messages with a text body
- send_media: upload to /{phone_number_id}/media, then send a document
  message referencing the returned media id

Chat addresses keep the bot's "<number>@c.us" / "<id>@g.us" form; the
suffix is stripped when talking to the API.
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import httpx

from config.constants import DeliveryConfig, MimeTypes, Timeouts
from observability import get_logger

logger = get_logger(__name__)


def recipient_for(chat_id: str) -> tuple[str, str]:
    """Split a chat address into (recipient_type, API recipient id)."""
    address, _, suffix = chat_id.partition("@")
    return ("group" if suffix == "g.us" else "individual"), address


class WhatsAppCloudTransport:
    """Async client for the WhatsApp Cloud API."""

    def __init__(
        self,
        api_url: str,
        phone_number_id: str,
        access_token: str,
        timeout: float = Timeouts.HTTP_LONG,
    ):
        """
        Initialize the transport.

        Args:
            api_url: Graph API base URL (e.g. https://graph.facebook.com/v19.0)
            phone_number_id: Sender phone number ID
            access_token: Bearer token for the Graph API
            timeout: Request timeout in seconds (uploads can be slow)
        """
        self.base_url = f"{api_url.rstrip('/')}/{phone_number_id}"
        self.access_token = access_token
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _send_message(self, chat_id: str, payload: dict[str, Any]) -> bool:
        recipient_type, to = recipient_for(chat_id)
        body = {
            "messaging_product": "whatsapp",
            "recipient_type": recipient_type,
            "to": to,
            **payload,
        }
        try:
            client = await self._get_client()
            response = await client.post(f"{self.base_url}/messages", json=body)
            response.raise_for_status()
            return True
        except httpx.TimeoutException:
            logger.warning(f"WhatsApp send timeout for {chat_id}")
            return False
        except httpx.HTTPError as e:
            logger.warning(f"WhatsApp send error for {chat_id}: {e}")
            return False

    async def send_text(self, chat_id: str, text: str) -> bool:
        return await self._send_message(chat_id, {"type": "text", "text": {"body": text}})

    async def _upload_media(self, file_path: Path, file_name: str) -> Optional[str]:
        content = await asyncio.to_thread(Path(file_path).read_bytes)
        if len(content) > DeliveryConfig.MAX_FILE_SIZE_MB * 1024 * 1024:
            logger.error(f"File too large to send: {file_name} ({len(content)} bytes)")
            return None

        mime_type = MimeTypes.BY_EXTENSION.get(Path(file_name).suffix.lower(), MimeTypes.DEFAULT)
        try:
            client = await self._get_client()
            response = await client.post(
                f"{self.base_url}/media",
                data={"messaging_product": "whatsapp", "type": mime_type},
                files={"file": (file_name, content, mime_type)},
            )
            response.raise_for_status()
            return response.json().get("id")
        except httpx.HTTPError as e:
            logger.warning(f"WhatsApp media upload failed for {file_name}: {e}")
            return None

    async def send_media(
        self,
        chat_id: str,
        file_path: Path,
        caption: str,
        file_name: Optional[str] = None,
    ) -> bool:
        """Upload a file and send it as a document with a caption."""
        file_name = file_name or Path(file_path).name
        media_id = await self._upload_media(file_path, file_name)
        if not media_id:
            return False

        return await self._send_message(
            chat_id,
            {
                "type": "document",
                "document": {"id": media_id, "caption": caption, "filename": file_name},
            },
        )

    async def is_group_admin(self, chat_id: str, user_id: str) -> bool:
        # The Cloud API exposes no participant roles
        return False


def parse_webhook_messages(payload: dict[str, Any]) -> list[dict[str, str]]:
    """
    Extract text messages from a webhook notification.

    Returns:
        List of {"chat_id", "sender_id", "body", "message_id"} dicts
    """
    messages = []
    for entry in payload.get("entry", []):
        for change in entry.get("changes", []):
            value = change.get("value", {})
            for message in value.get("messages", []):
                if message.get("type") != "text":
                    continue
                sender = f"{message.get('from', '')}@c.us"
                group_id = message.get("group_id")
                messages.append(
                    {
                        "chat_id": f"{group_id}@g.us" if group_id else sender,
                        "sender_id": sender,
                        "body": message.get("text", {}).get("body", ""),
                        "message_id": message.get("id", ""),
                    }
                )
    return messages

"""
Capability interfaces consumed by the bot core.

The folder monitor and delivery pipeline never talk to a storage vendor or
chat protocol directly. They are handed objects satisfying these protocols;
storage.minio_backend and whatsapp_cloud provide the production ones, tests
provide fakes.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from models import RemoteFile


class StorageBackend(Protocol):
    """Cloud-folder capability (list, download, validate)."""

    def is_configured(self) -> bool:
        ...

    async def list_latest_eligible_file(self, folder_id: str) -> Optional[RemoteFile]:
        ...

    async def download_file(self, file_id: str, dest_path: Path) -> bool:
        ...

    async def validate_folder_access(self, folder_id: str) -> bool:
        ...


class ChatTransport(Protocol):
    """Chat capability (send media, send text, group role lookup)."""

    async def send_media(
        self,
        chat_id: str,
        file_path: Path,
        caption: str,
        file_name: Optional[str] = None,
    ) -> bool:
        ...

    async def send_text(self, chat_id: str, text: str) -> bool:
        ...

    async def is_group_admin(self, chat_id: str, user_id: str) -> bool:
        ...


@dataclass
class IncomingMessage:
    """A text message received from the chat transport."""

    chat_id: str
    sender_id: str
    body: str
    message_id: Optional[str] = None
    mentions: list[str] = field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.chat_id.endswith("@g.us")

"""
Delivery Pipeline - download a detected file and send it to the mapped chat.

Each delivery is all-or-nothing from the monitor's point of view: deliver()
returns True only when the chat transport accepted the document. The scratch
copy is removed on every exit path, including download failures that leave a
partial file behind.
"""

import logging
import re
import time
from pathlib import Path
from typing import Optional

from config.constants import DeliveryConfig
from models import FolderMapping, RemoteFile

from .capabilities import ChatTransport, StorageBackend
from .metrics import record_delivery

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_fragment(value: str, limit: int) -> str:
    return _UNSAFE_CHARS.sub("_", value)[:limit]


def scratch_path(scratch_dir: Path, folder_id: str, file_name: str) -> Path:
    """
    Build a collision-free scratch location for one delivery.

    Pattern: autofetch_<epoch ms>_<folder id fragment>_<file name>
    """
    stamp = int(time.time() * 1000)
    folder_part = _safe_fragment(folder_id, DeliveryConfig.FOLDER_ID_SCRATCH_CHARS)
    name_part = _safe_fragment(file_name, DeliveryConfig.MAX_SCRATCH_NAME_CHARS)
    return Path(scratch_dir) / f"autofetch_{stamp}_{folder_part}_{name_part}"


def build_caption(mapping: FolderMapping, remote_file: RemoteFile, bot_name: str) -> str:
    """Caption attached to a delivered spreadsheet."""
    modified = remote_file.modified_time.strftime("%d/%m/%Y, %H:%M:%S")
    folder_ref = mapping.folder_id[:DeliveryConfig.FOLDER_ID_CAPTION_CHARS]
    return (
        "📊 *Auto-Delivered Excel File*\n\n"
        f"📁 *File:* {remote_file.name}\n"
        f"📅 *Modified:* {modified}\n"
        f"🔄 *Auto-Fetch:* {mapping.nickname}\n"
        f"📂 *Folder:* `{folder_ref}...`\n\n"
        f"🤖 *Delivered by {bot_name}*"
    )


class DeliveryPipeline:
    """
    Downloads a remote file to scratch space and sends it as a document.

    Usage:
        pipeline = DeliveryPipeline(storage, transport, Path("./temp/excel"), "Konoha Bot")
        delivered = await pipeline.deliver(mapping, remote_file)
    """

    def __init__(
        self,
        storage: StorageBackend,
        transport: ChatTransport,
        scratch_dir: Path,
        bot_name: str,
    ):
        self.storage = storage
        self.transport = transport
        self.scratch_dir = Path(scratch_dir)
        self.bot_name = bot_name

    def _cleanup(self, path: Optional[Path]) -> None:
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
            logger.debug(f"Cleaned up scratch file: {path.name}")
        except OSError as e:
            logger.warning(f"Failed to remove scratch file {path}: {e}")

    async def deliver(self, mapping: FolderMapping, remote_file: RemoteFile) -> bool:
        """
        Deliver one file to the mapping's chat.

        Args:
            mapping: Destination mapping (chat, nickname, folder)
            remote_file: File found by the monitor

        Returns:
            True if the chat transport accepted the file, False otherwise.
            Never raises.
        """
        path: Optional[Path] = None
        try:
            self.scratch_dir.mkdir(parents=True, exist_ok=True)
            path = scratch_path(self.scratch_dir, mapping.folder_id, remote_file.name)

            logger.info(
                f"Downloading {remote_file.name} for {mapping.nickname}",
                extra={"folder_id": mapping.folder_id, "file_id": remote_file.id},
            )
            if not await self.storage.download_file(remote_file.id, path):
                logger.error(f"Failed to download file: {remote_file.name}")
                record_delivery("download_failed")
                return False

            caption = build_caption(mapping, remote_file, self.bot_name)
            sent = await self.transport.send_media(
                mapping.chat_id, path, caption, file_name=remote_file.name
            )
            if not sent:
                logger.error(
                    f"Failed to send {remote_file.name} to {mapping.chat_id}",
                    extra={"folder_id": mapping.folder_id},
                )
                record_delivery("send_failed")
                return False

            logger.info(
                f"Auto-delivered {remote_file.name} to {mapping.chat_id}",
                extra={"folder_id": mapping.folder_id, "nickname": mapping.nickname},
            )
            record_delivery("success")
            return True

        except Exception as e:
            logger.error(
                f"Error delivering {remote_file.name}: {e}",
                exc_info=True,
                extra={"folder_id": mapping.folder_id},
            )
            record_delivery("error")
            return False

        finally:
            self._cleanup(path)

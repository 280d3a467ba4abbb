"""
Owner Manager - per-group owners with full bot access.

The owner map (group chat id -> owner user id) lives in a small JSON document
next to the auto-fetch mappings. The bot owner is configured globally and
always has access; group admins act as owners while a group has none set.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from storage import read_json, write_json_atomic

from .capabilities import ChatTransport

logger = logging.getLogger(__name__)


class OwnerManager:
    """
    Usage:
        owners = OwnerManager(Path("./data/group-owners.json"), bot_owner_id="919675893215@c.us")
        await owners.load()
        if await owners.has_owner_privileges(group_id, sender_id, transport):
            ...
    """

    def __init__(self, path: Path, bot_owner_id: str):
        self.path = Path(path)
        self.bot_owner_id = bot_owner_id
        self._owners: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def load(self) -> int:
        """Load owners from disk, creating an empty document if missing."""
        if not self.path.exists():
            await self._save()
            logger.info(f"Created new group owners file: {self.path}")
            return 0

        try:
            data = await asyncio.to_thread(read_json, self.path)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading owners: {e}")
            self._owners = {}
            return 0

        self._owners = {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}
        logger.info(f"Loaded {len(self._owners)} group owners")
        return len(self._owners)

    async def _save(self) -> bool:
        snapshot = dict(self._owners)
        async with self._lock:
            try:
                await asyncio.to_thread(write_json_atomic, self.path, snapshot)
                return True
            except OSError as e:
                logger.error(f"Error saving owners: {e}")
                return False

    async def set_owner(self, group_id: str, owner_id: str) -> bool:
        self._owners[group_id] = owner_id
        logger.info(f"Owner set for group {group_id}: {owner_id}")
        return await self._save()

    async def remove_owner(self, group_id: str) -> bool:
        """Returns False if the group had no owner."""
        if self._owners.pop(group_id, None) is None:
            return False
        logger.info(f"Owner removed for group {group_id}")
        return await self._save()

    def get_owner(self, group_id: str) -> Optional[str]:
        return self._owners.get(group_id)

    def is_owner(self, group_id: str, user_id: str) -> bool:
        return self.get_owner(group_id) == user_id

    def is_bot_owner(self, user_id: str) -> bool:
        return bool(self.bot_owner_id) and user_id == self.bot_owner_id

    async def has_owner_privileges(
        self,
        group_id: str,
        user_id: str,
        transport: Optional[ChatTransport] = None,
    ) -> bool:
        """
        Owner of the group, or a group admin when no owner is set.
        """
        if self.is_owner(group_id, user_id):
            return True

        if self.get_owner(group_id) is None and transport is not None and group_id.endswith("@g.us"):
            try:
                return await transport.is_group_admin(group_id, user_id)
            except Exception as e:
                logger.error(f"Error checking admin status: {e}")
                return False

        return False

    def all_owners(self) -> dict[str, str]:
        return dict(self._owners)

    @property
    def owner_count(self) -> int:
        return len(self._owners)

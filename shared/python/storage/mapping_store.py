"""
Durable Mapping Store - folder mappings persisted as one JSON document.

Every save is a full snapshot of all mappings (never incremental). Saves are
serialized through an asyncio.Lock and written atomically, so concurrent
poll cycles for different folders cannot interleave partial documents.

Loading is forgiving: a missing file is created empty, and a corrupt file or
invalid record is logged and skipped rather than crashing the bot.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol

from models import FolderMapping

from .json_file import read_json, write_json_atomic

logger = logging.getLogger(__name__)


class MappingRepository(Protocol):
    """Durable store capability consumed by the folder monitor."""

    async def load_all(self) -> dict[str, FolderMapping]:
        ...

    async def save_all(self, mappings: dict[str, FolderMapping]) -> bool:
        ...


class JsonMappingStore:
    """
    File-backed MappingRepository.

    Usage:
        store = JsonMappingStore(Path("./data/auto-fetch-mappings.json"))
        mappings = await store.load_all()
        await store.save_all(mappings)
    """

    def __init__(self, path: Path):
        """
        Initialize the store.

        Args:
            path: Location of the JSON document
        """
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def load_all(self) -> dict[str, FolderMapping]:
        """
        Load every persisted mapping.

        Returns:
            Dict of folder_id -> FolderMapping (empty if nothing usable on disk)
        """
        async with self._lock:
            if not self.path.exists():
                try:
                    await asyncio.to_thread(write_json_atomic, self.path, {})
                    logger.info(f"Created new auto-fetch mappings file: {self.path}")
                except OSError as e:
                    logger.error(f"Error creating auto-fetch mappings file: {e}")
                return {}

            try:
                data = await asyncio.to_thread(read_json, self.path)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error loading auto-fetch mappings: {e}")
                return {}

        if not isinstance(data, dict):
            logger.error(f"Auto-fetch mappings file is not a JSON object: {self.path}")
            return {}

        mappings: dict[str, FolderMapping] = {}
        for folder_id, record in data.items():
            try:
                mappings[folder_id] = FolderMapping.from_record(folder_id, record)
            except (ValueError, TypeError) as e:
                logger.error(
                    f"Skipping invalid mapping record for folder {folder_id}: {e}",
                    extra={"folder_id": folder_id},
                )

        logger.info(f"Loaded {len(mappings)} auto-fetch mappings")
        return mappings

    async def save_all(self, mappings: dict[str, FolderMapping]) -> bool:
        """
        Persist a full snapshot of all mappings.

        Args:
            mappings: Dict of folder_id -> FolderMapping

        Returns:
            True if the document was written, False on failure
        """
        # Export synchronously so the snapshot reflects state at call time
        document = {folder_id: mapping.to_record() for folder_id, mapping in mappings.items()}

        async with self._lock:
            try:
                await asyncio.to_thread(write_json_atomic, self.path, document)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Error saving auto-fetch mappings: {e}")
                return False

        logger.debug(f"Auto-fetch mappings saved ({len(document)} records)")
        return True

"""
Auto-Fetch Manager - per-folder monitors that deliver new spreadsheets.

Architecture:
- One asyncio.Task per active folder mapping (the folder's "monitor"),
  registered in _tasks next to the mapping itself in _mappings
- Each monitor sleeps initial_delay, polls, then polls every check_interval
- A poll asks the storage backend for the newest eligible file and hands it to
  the DeliveryPipeline when its id differs from the last delivered one
- Failed polls burn the retry budget; at max_retries the mapping is paused
  and its monitor removed until an operator resumes it
- Every mutation is followed by a full snapshot save of all mappings

Poll outcomes:
- SKIPPED: mapping missing, inactive, or no backend attached
- EMPTY: folder holds no eligible file (healthy, resets retries)
- UNCHANGED: newest file already delivered (healthy, resets retries)
- DELIVERED: new file sent to the chat
- FAILED: listing, download or send failed; retry_count incremented
- PAUSED: FAILED and the retry budget is now exhausted

Concurrency:
- Starting a monitor always cancels the folder's previous task first, so at
  most one task per folder exists at any time
- Stopping is a soft-cancel: a poll cycle already running is shielded from
  the cancellation and finishes (including its save); no later cycle runs
- A per-folder lock serializes poll cycles, so a shielded cycle that outlives
  its task cannot overlap the first cycle of a restarted monitor
"""

import asyncio
import logging
import time
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Optional

from config.constants import Timeouts
from models import ErrorCode, FolderMapping, OperationResult, describe_error
from notifications import NotificationClient
from observability import LogContext
from storage import MappingRepository

from .capabilities import ChatTransport, StorageBackend
from .delivery import DeliveryPipeline
from .metrics import (
    record_auto_pause,
    record_persist_failure,
    record_poll,
    set_active_monitors,
)

logger = logging.getLogger(__name__)


class PollOutcome(str, Enum):
    """Result of one poll cycle."""
    SKIPPED = "skipped"
    EMPTY = "empty"
    UNCHANGED = "unchanged"
    DELIVERED = "delivered"
    FAILED = "failed"
    PAUSED = "paused"


class AutoFetchManager:
    """
    Owns folder mappings, their monitors and the lifecycle operations on them.

    Usage:
        manager = AutoFetchManager(JsonMappingStore(path), scratch_dir=Path("./temp/excel"))
        await manager.initialize(storage_backend, chat_transport)

        result = await manager.add_mapping("reports/team-a", "123-456@g.us", "team_a")
        if not result.success:
            await transport.send_text(chat_id, result.error)

        await manager.close()
    """

    def __init__(
        self,
        store: MappingRepository,
        scratch_dir: Path,
        bot_name: str = "Konoha Bot",
        check_interval: float = 300.0,
        initial_delay: float = 2.0,
        max_retries: int = 3,
        retry_interval: float = 60.0,
        notifier: Optional[NotificationClient] = None,
    ):
        """
        Initialize the manager.

        Args:
            store: Durable mapping repository
            scratch_dir: Directory for transient downloads
            bot_name: Name shown in delivery captions
            check_interval: Seconds between polls of one folder
            initial_delay: Seconds before a new monitor's first poll
            max_retries: Consecutive failures before auto-pause
            retry_interval: Reserved for backoff between failed polls (unused)
            notifier: Optional notification client for delivery/pause events
        """
        self.store = store
        self.scratch_dir = Path(scratch_dir)
        self.bot_name = bot_name
        self.check_interval = check_interval
        self.initial_delay = initial_delay
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.notifier = notifier

        self.storage: Optional[StorageBackend] = None
        self.transport: Optional[ChatTransport] = None
        self.pipeline: Optional[DeliveryPipeline] = None

        self._mappings: dict[str, FolderMapping] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._inflight: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, store: MappingRepository, settings, notifier=None) -> "AutoFetchManager":
        return cls(
            store=store,
            scratch_dir=settings.SCRATCH_DIR,
            bot_name=settings.BOT_NAME,
            check_interval=settings.check_interval_seconds,
            initial_delay=settings.initial_delay_seconds,
            max_retries=settings.AUTOFETCH_MAX_RETRIES,
            retry_interval=settings.AUTOFETCH_RETRY_INTERVAL_MS / 1000,
            notifier=notifier,
        )

    # =========================================================================
    # Setup
    # =========================================================================

    async def initialize(
        self,
        storage: Optional[StorageBackend],
        transport: Optional[ChatTransport],
    ) -> int:
        """
        Load persisted mappings, attach backends and start all active monitors.

        Returns:
            Number of monitors started
        """
        self._mappings = await self.store.load_all()
        self._attach(storage, transport)
        started = self.start_all()
        logger.info(
            f"Auto-fetch initialized: {len(self._mappings)} mappings, {started} monitors started"
        )
        return started

    def _attach(self, storage: Optional[StorageBackend], transport: Optional[ChatTransport]) -> None:
        self.storage = storage
        self.transport = transport
        if storage is not None and transport is not None:
            self.pipeline = DeliveryPipeline(storage, transport, self.scratch_dir, self.bot_name)
        else:
            self.pipeline = None

    def attach_backends(
        self,
        storage: Optional[StorageBackend],
        transport: Optional[ChatTransport],
    ) -> int:
        """
        Swap the storage/chat backends, restarting monitors around the swap.

        Passing None for either backend stops all monitors until a usable pair
        is attached again.
        """
        self.stop_all()
        self._attach(storage, transport)
        return self.start_all()

    def _backends_ready(self) -> bool:
        return (
            self.storage is not None
            and self.storage.is_configured()
            and self.pipeline is not None
        )

    async def close(self) -> None:
        """Stop every monitor and wait for poll cycles already in flight."""
        self.stop_all()
        if self._inflight:
            logger.info(f"Waiting for {len(self._inflight)} in-flight poll cycles")
            await asyncio.wait(set(self._inflight), timeout=Timeouts.SHUTDOWN_GRACE)

    # =========================================================================
    # Folder monitors
    # =========================================================================

    def start_monitoring(self, folder_id: str) -> bool:
        """
        (Re)start the monitor for one folder.

        Any existing monitor for the folder is cancelled first. No-op if the
        mapping is missing or inactive, or no backend is attached.

        Returns:
            True if a monitor task was started
        """
        self.stop_monitoring(folder_id)

        mapping = self._mappings.get(folder_id)
        if mapping is None or not mapping.is_active:
            return False

        if not self._backends_ready():
            logger.warning(f"Storage backend not available, not monitoring {folder_id}")
            return False

        task = asyncio.create_task(self._monitor_loop(folder_id), name=f"autofetch:{folder_id}")
        task.add_done_callback(partial(self._on_monitor_done, folder_id))
        self._tasks[folder_id] = task
        set_active_monitors(len(self._tasks))

        logger.info(
            f"Started monitoring folder {folder_id} ({mapping.nickname})",
            extra={"folder_id": folder_id, "chat_id": mapping.chat_id},
        )
        return True

    def stop_monitoring(self, folder_id: str) -> bool:
        """
        Stop the monitor for one folder; safe when none exists.

        Returns:
            True if a monitor was registered
        """
        task = self._tasks.pop(folder_id, None)
        set_active_monitors(len(self._tasks))
        if task is None:
            return False

        # poll_once awaited directly inside a monitor task must not cancel itself
        if task is not asyncio.current_task():
            task.cancel()

        logger.info(f"Stopped monitoring folder {folder_id}", extra={"folder_id": folder_id})
        return True

    def start_all(self) -> int:
        """Start monitors for all active mappings."""
        if not self._backends_ready():
            logger.warning("Storage backend not configured, auto-fetch monitors not started")
            return 0

        started = 0
        for folder_id, mapping in list(self._mappings.items()):
            if mapping.is_active and self.start_monitoring(folder_id):
                started += 1

        logger.info(f"Started {started} auto-fetch monitors")
        return started

    def stop_all(self) -> int:
        """Stop every registered monitor."""
        stopped = 0
        for folder_id in list(self._tasks):
            if self.stop_monitoring(folder_id):
                stopped += 1

        if stopped:
            logger.info(f"Stopped {stopped} auto-fetch monitors")
        return stopped

    def _on_monitor_done(self, folder_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(folder_id) is task:
            del self._tasks[folder_id]
            set_active_monitors(len(self._tasks))

        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Monitor for {folder_id} crashed: {task.exception()}",
                extra={"folder_id": folder_id},
            )

    async def _monitor_loop(self, folder_id: str) -> None:
        delay = self.initial_delay
        while True:
            await asyncio.sleep(delay)
            delay = self.check_interval

            await self._dispatch_cycle(folder_id)

            mapping = self._mappings.get(folder_id)
            if mapping is None or not mapping.is_active:
                logger.debug(f"Monitor for {folder_id} exiting, mapping inactive")
                return

    async def _dispatch_cycle(self, folder_id: str) -> PollOutcome:
        """Run one poll in its own task, shielded from monitor cancellation."""
        cycle = asyncio.create_task(self.poll_once(folder_id), name=f"autofetch-poll:{folder_id}")
        self._inflight.add(cycle)
        cycle.add_done_callback(self._inflight.discard)
        return await asyncio.shield(cycle)

    def _folder_lock(self, folder_id: str) -> asyncio.Lock:
        lock = self._locks.get(folder_id)
        if lock is None:
            lock = self._locks[folder_id] = asyncio.Lock()
        return lock

    # =========================================================================
    # Poll cycle
    # =========================================================================

    async def poll_once(self, folder_id: str) -> PollOutcome:
        """
        Run one poll cycle for a folder.

        Never raises: every failure is converted into a FAILED or PAUSED outcome.
        """
        async with self._folder_lock(folder_id):
            with LogContext(trace_id=f"autofetch:{folder_id}", folder_id=folder_id):
                started = time.monotonic()
                outcome = await self._poll(folder_id)
                record_poll(outcome.value, time.monotonic() - started)
                return outcome

    def _is_current(self, folder_id: str, mapping: FolderMapping) -> bool:
        """False once the mapping a cycle started with was removed or replaced."""
        if self._mappings.get(folder_id) is mapping:
            return True
        logger.info(
            f"Discarding poll result for {folder_id}: mapping changed during the cycle",
            extra={"folder_id": folder_id},
        )
        return False

    async def _poll(self, folder_id: str) -> PollOutcome:
        # Looked up fresh every cycle; lifecycle operations may have replaced it
        mapping = self._mappings.get(folder_id)
        if mapping is None or not mapping.is_active:
            return PollOutcome.SKIPPED

        if not self._backends_ready():
            logger.warning(f"Skipping poll of {folder_id}: storage backend not available")
            return PollOutcome.SKIPPED

        try:
            latest = await self.storage.list_latest_eligible_file(folder_id)
            if not self._is_current(folder_id, mapping):
                return PollOutcome.SKIPPED

            if latest is None:
                logger.debug(f"No eligible files found in folder {folder_id}")
                mapping.mark_checked()
                await self._persist()
                return PollOutcome.EMPTY

            if not mapping.is_new_file(latest.id):
                logger.debug(f"No new files in folder {folder_id}")
                mapping.mark_checked()
                await self._persist()
                return PollOutcome.UNCHANGED

            logger.info(
                f"New file detected: {latest.name} in folder {folder_id}",
                extra={"folder_id": folder_id, "file_id": latest.id},
            )

            delivered = await self.pipeline.deliver(mapping, latest)
            if not self._is_current(folder_id, mapping):
                return PollOutcome.SKIPPED

            if delivered:
                mapping.mark_delivered(latest.id, latest.name)
                await self._persist()
                if self.notifier:
                    await self.notifier.file_delivered(folder_id, mapping.chat_id, latest.name)
                return PollOutcome.DELIVERED

            logger.warning(f"Delivery of {latest.name} failed for folder {folder_id}")

        except Exception as e:
            logger.error(
                f"Error checking folder {folder_id}: {e}",
                exc_info=True,
                extra={"folder_id": folder_id},
            )

        return await self._record_failure(folder_id, mapping)

    async def _record_failure(self, folder_id: str, mapping: FolderMapping) -> PollOutcome:
        if not self._is_current(folder_id, mapping):
            return PollOutcome.SKIPPED

        if not mapping.record_failure(self.max_retries):
            logger.info(
                f"{describe_error(ErrorCode.POLL_TRANSIENT_FAILURE, folder_id)} "
                f"(attempt {mapping.retry_count}/{self.max_retries})"
            )
            await self._persist()
            return PollOutcome.FAILED

        logger.warning(
            describe_error(ErrorCode.RETRY_BUDGET_EXHAUSTED, f"{folder_id} ({mapping.nickname})"),
            extra={"folder_id": folder_id, "retry_count": mapping.retry_count},
        )
        self.stop_monitoring(folder_id)
        record_auto_pause()
        await self._persist()
        if self.notifier:
            await self.notifier.folder_paused(folder_id, mapping.nickname, mapping.retry_count)
        return PollOutcome.PAUSED

    async def _persist(self) -> bool:
        """Save a full snapshot; in-memory state stays authoritative on failure."""
        try:
            saved = await self.store.save_all(self._mappings)
        except Exception as e:
            logger.error(f"Error saving auto-fetch mappings: {e}")
            saved = False

        if not saved:
            record_persist_failure()
            logger.warning(describe_error(ErrorCode.PERSISTENCE_FAILURE))
        return saved

    # =========================================================================
    # Lifecycle API
    # =========================================================================

    def _resolve(self, identifier: str) -> Optional[str]:
        """Map a folder id or nickname to a folder id."""
        if identifier in self._mappings:
            return identifier
        for folder_id, mapping in self._mappings.items():
            if mapping.nickname == identifier:
                return folder_id
        return None

    async def add_mapping(
        self,
        folder_id: str,
        chat_id: str,
        nickname: Optional[str] = None,
    ) -> OperationResult:
        """
        Start monitoring a folder for a chat.

        Fails with DUPLICATE_FOLDER if the folder is already mapped and with
        FOLDER_INACCESSIBLE if the storage backend cannot read it.
        """
        if folder_id in self._mappings:
            return OperationResult.fail(ErrorCode.DUPLICATE_FOLDER, folder_id)

        if self.storage is None or not self.storage.is_configured():
            return OperationResult.fail(ErrorCode.FOLDER_INACCESSIBLE, "storage backend not configured")

        try:
            accessible = await self.storage.validate_folder_access(folder_id)
        except Exception as e:
            logger.error(f"Folder validation failed for {folder_id}: {e}")
            accessible = False

        if not accessible:
            return OperationResult.fail(ErrorCode.FOLDER_INACCESSIBLE, folder_id)

        # Another add may have completed while validation was awaited
        if folder_id in self._mappings:
            return OperationResult.fail(ErrorCode.DUPLICATE_FOLDER, folder_id)

        mapping = FolderMapping.create(folder_id, chat_id, nickname)
        self._mappings[folder_id] = mapping
        await self._persist()
        self.start_monitoring(folder_id)

        logger.info(
            f"Added auto-fetch mapping: {folder_id} -> {chat_id} ({mapping.nickname})",
            extra={"folder_id": folder_id, "chat_id": chat_id},
        )
        return OperationResult.ok(mapping.model_copy(deep=True))

    async def remove_mapping(self, identifier: str) -> OperationResult:
        """Stop monitoring a folder (by id or nickname) and forget it."""
        folder_id = self._resolve(identifier)
        if folder_id is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, identifier)

        self.stop_monitoring(folder_id)
        mapping = self._mappings.pop(folder_id)
        await self._persist()

        logger.info(f"Removed auto-fetch mapping: {folder_id} ({mapping.nickname})")
        return OperationResult.ok(mapping.model_copy(deep=True))

    async def toggle_monitoring(self, identifier: str, active: bool) -> OperationResult:
        """Resume (resetting the retry budget) or pause a folder's monitor."""
        folder_id = self._resolve(identifier)
        if folder_id is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, identifier)

        mapping = self._mappings[folder_id]
        if active:
            mapping.activate()
            self.start_monitoring(folder_id)
        else:
            mapping.deactivate()
            self.stop_monitoring(folder_id)

        await self._persist()

        logger.info(f"Auto-fetch {'resumed' if active else 'paused'} for folder {folder_id}")
        return OperationResult.ok(mapping.model_copy(deep=True))

    def get_mapping(self, identifier: str) -> Optional[FolderMapping]:
        folder_id = self._resolve(identifier)
        if folder_id is None:
            return None
        return self._mappings[folder_id].model_copy(deep=True)

    def list_mappings(self) -> dict[str, FolderMapping]:
        """Snapshot of all mappings; mutating it does not affect the manager."""
        return {
            folder_id: mapping.model_copy(deep=True)
            for folder_id, mapping in self._mappings.items()
        }

    def is_monitoring(self, folder_id: str) -> bool:
        return folder_id in self._tasks

    @property
    def active_count(self) -> int:
        return sum(1 for mapping in self._mappings.values() if mapping.is_active)

    @property
    def monitor_count(self) -> int:
        return len(self._tasks)

    @property
    def check_interval_minutes(self) -> float:
        return self.check_interval / 60

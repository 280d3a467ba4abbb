"""Fakes for the storage, chat and persistence capabilities."""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest

from courier.auto_fetch import AutoFetchManager
from models import FolderMapping, RemoteFile


def make_file(file_id: str = "v1", name: str = "report.xlsx") -> RemoteFile:
    return RemoteFile(
        id=file_id,
        name=name,
        modified_time=datetime(2025, 11, 20, 8, 30, tzinfo=timezone.utc),
    )


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the event loop until predicate() holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.01)


class FakeStorage:
    """In-memory StorageBackend. files maps folder -> RemoteFile, None or an exception."""

    def __init__(self):
        self.files: dict[str, object] = {}
        self.accessible: set[str] = set()
        self.configured = True
        self.download_ok = True
        self.list_calls = 0
        self.downloads: list[tuple[str, Path]] = []
        self.gate: Optional[asyncio.Event] = None
        self.entered = asyncio.Event()

    def is_configured(self) -> bool:
        return self.configured

    async def list_latest_eligible_file(self, folder_id: str):
        self.list_calls += 1
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        result = self.files.get(folder_id)
        if isinstance(result, Exception):
            raise result
        return result

    async def download_file(self, file_id: str, dest_path: Path) -> bool:
        self.downloads.append((file_id, Path(dest_path)))
        if not self.download_ok:
            Path(dest_path).write_bytes(b"partial")
            return False
        Path(dest_path).write_bytes(b"spreadsheet-bytes")
        return True

    async def validate_folder_access(self, folder_id: str) -> bool:
        return folder_id in self.accessible


class FakeTransport:
    """Records everything sent; send_ok toggles media delivery success."""

    def __init__(self):
        self.send_ok = True
        self.media: list[dict] = []
        self.texts: list[tuple[str, str]] = []
        self.admins: set[tuple[str, str]] = set()

    async def send_media(self, chat_id, file_path, caption, file_name=None) -> bool:
        self.media.append(
            {
                "chat_id": chat_id,
                "path": Path(file_path),
                "existed": Path(file_path).exists(),
                "caption": caption,
                "file_name": file_name,
            }
        )
        return self.send_ok

    async def send_text(self, chat_id: str, text: str) -> bool:
        self.texts.append((chat_id, text))
        return True

    async def is_group_admin(self, chat_id: str, user_id: str) -> bool:
        return (chat_id, user_id) in self.admins

    def last_text(self) -> str:
        return self.texts[-1][1] if self.texts else ""


class MemoryStore:
    """MappingRepository keeping records the way the JSON store does."""

    def __init__(self, records: Optional[dict] = None):
        self.records: dict[str, dict] = dict(records or {})
        self.save_ok = True
        self.saves = 0

    async def load_all(self) -> dict[str, FolderMapping]:
        return {
            folder_id: FolderMapping.from_record(folder_id, record)
            for folder_id, record in self.records.items()
        }

    async def save_all(self, mappings: dict[str, FolderMapping]) -> bool:
        self.saves += 1
        if not self.save_ok:
            return False
        self.records = {folder_id: m.to_record() for folder_id, m in mappings.items()}
        return True


@pytest.fixture
def storage():
    backend = FakeStorage()
    backend.accessible.add("F1")
    return backend


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
async def manager(store, storage, transport, tmp_path):
    """Manager whose monitors never fire on their own; tests drive poll_once."""
    instance = AutoFetchManager(
        store,
        scratch_dir=tmp_path / "scratch",
        check_interval=3600,
        initial_delay=3600,
        max_retries=3,
    )
    await instance.initialize(storage, transport)
    yield instance
    await instance.close()


@pytest.fixture
async def fast_manager(store, storage, transport, tmp_path):
    """Manager with near-zero intervals so monitors actually run."""
    instance = AutoFetchManager(
        store,
        scratch_dir=tmp_path / "scratch",
        check_interval=0.01,
        initial_delay=0,
        max_retries=3,
    )
    await instance.initialize(storage, transport)
    yield instance
    await instance.close()

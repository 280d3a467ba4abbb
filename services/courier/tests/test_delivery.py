"""Tests for the delivery pipeline."""

from pathlib import Path

import pytest

from courier.delivery import DeliveryPipeline, build_caption, scratch_path
from models import FolderMapping

from conftest import FakeStorage, FakeTransport, make_file


@pytest.fixture
def mapping():
    return FolderMapping.create("reports/team-a/2025", "123-456@g.us", "team_a")


@pytest.fixture
def pipeline(tmp_path):
    return DeliveryPipeline(FakeStorage(), FakeTransport(), tmp_path / "scratch", "Konoha Bot")


@pytest.mark.asyncio
async def test_successful_delivery_cleans_scratch(pipeline, mapping, tmp_path):
    delivered = await pipeline.deliver(mapping, make_file("v1", "week-12.xlsx"))

    assert delivered is True
    sent = pipeline.transport.media[0]
    assert sent["existed"] is True
    assert sent["chat_id"] == "123-456@g.us"
    assert sent["file_name"] == "week-12.xlsx"
    assert not sent["path"].exists()
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.asyncio
async def test_download_failure_removes_partial_file(pipeline, mapping, tmp_path):
    pipeline.storage.download_ok = False

    delivered = await pipeline.deliver(mapping, make_file())

    assert delivered is False
    assert pipeline.transport.media == []
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.asyncio
async def test_send_failure_still_cleans_up(pipeline, mapping, tmp_path):
    pipeline.transport.send_ok = False

    assert await pipeline.deliver(mapping, make_file()) is False
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.asyncio
async def test_transport_exception_is_contained(pipeline, mapping, tmp_path):
    async def explode(*args, **kwargs):
        raise ConnectionError("socket closed")

    pipeline.transport.send_media = explode

    assert await pipeline.deliver(mapping, make_file()) is False
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.asyncio
async def test_download_exception_is_contained(pipeline, mapping):
    async def explode(file_id, dest_path):
        Path(dest_path).write_bytes(b"half")
        raise OSError("disk full")

    pipeline.storage.download_file = explode

    assert await pipeline.deliver(mapping, make_file()) is False
    assert list(pipeline.scratch_dir.iterdir()) == []


def test_caption_contents(mapping):
    caption = build_caption(mapping, make_file("v1", "week-12.xlsx"), "Konoha Bot")

    assert "week-12.xlsx" in caption
    assert "20/11/2025, 08:30:00" in caption
    assert "team_a" in caption
    assert "`reports/team...`" in caption
    assert "Delivered by Konoha Bot" in caption


def test_scratch_path_is_flat_and_tagged(tmp_path):
    path = scratch_path(tmp_path, "reports/team-a", "../../etc/passwd.xlsx")

    assert path.parent == tmp_path
    assert path.name.startswith("autofetch_")
    assert "_reports__" in path.name
    assert "/" not in path.name


def test_scratch_paths_differ_per_folder(tmp_path):
    first = scratch_path(tmp_path, "folder-a", "report.xlsx")
    second = scratch_path(tmp_path, "folder-b", "report.xlsx")

    assert first != second

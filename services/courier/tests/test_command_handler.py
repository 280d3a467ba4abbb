"""Tests for command dispatch and the built-in commands."""

import pytest

from courier.capabilities import IncomingMessage
from courier.command_handler import CommandHandler
from courier.commands import Command, load_commands
from courier.commands.folders import is_valid_chat_id, is_valid_folder_id
from courier.owner_manager import OwnerManager

BOT_OWNER = "999@c.us"
GROUP = "111-222@g.us"


@pytest.fixture
async def owners(tmp_path):
    manager = OwnerManager(tmp_path / "owners.json", bot_owner_id=BOT_OWNER)
    await manager.load()
    return manager


@pytest.fixture
def handler(transport, owners, manager):
    return CommandHandler(transport, owners, auto_fetch=manager, prefix=".", bot_name="Konoha Bot")


def msg(body: str, sender: str = BOT_OWNER, chat_id: str = None) -> IncomingMessage:
    return IncomingMessage(chat_id=chat_id or sender, sender_id=sender, body=body)


@pytest.mark.asyncio
async def test_unprefixed_message_is_ignored(handler, transport):
    assert await handler.handle_message(msg("hello there")) is False
    assert transport.texts == []


@pytest.mark.asyncio
async def test_unknown_command_gets_hint(handler, transport):
    assert await handler.handle_message(msg(".dance")) is True
    assert "Unknown command" in transport.last_text()


@pytest.mark.asyncio
async def test_command_name_is_case_insensitive(handler, transport):
    await handler.handle_message(msg("  .PING  "))

    assert "Pong" in transport.texts[0][1]
    assert "Uptime" in transport.last_text()


@pytest.mark.asyncio
async def test_group_only_command_rejected_in_private_chat(handler, transport):
    await handler.handle_message(msg(".ownerset 12345678"))

    assert "only be used in groups" in transport.last_text()


@pytest.mark.asyncio
async def test_failing_command_is_contained(transport, owners):
    class Broken(Command):
        name = "broken"

        async def execute(self, ctx, args):
            raise RuntimeError("boom")

    handler = CommandHandler(transport, owners, commands={"broken": Broken()})

    assert await handler.handle_message(msg(".broken")) is True
    assert "error occurred" in transport.last_text()


def test_command_without_execute_cannot_be_built():
    class Incomplete(Command):
        name = "incomplete"

    with pytest.raises(TypeError):
        Incomplete()


@pytest.mark.asyncio
async def test_help_hides_owner_commands_from_users(handler, transport):
    await handler.handle_message(msg(".help", sender="555@c.us"))
    public_help = transport.last_text()

    await handler.handle_message(msg(".help"))
    owner_help = transport.last_text()

    assert ".ping" in public_help
    assert ".setfolder" not in public_help
    assert ".setfolder" in owner_help


@pytest.mark.asyncio
async def test_help_for_single_command(handler, transport):
    await handler.handle_message(msg(".help setfolder"))

    assert "Command Help: .setfolder" in transport.last_text()


@pytest.mark.asyncio
async def test_getchatid_requires_owner(handler, transport):
    await handler.handle_message(msg(".getchatid", sender="555@c.us"))
    assert "Only bot owner" in transport.last_text()

    await handler.handle_message(msg(".getchatid", chat_id=GROUP))
    assert f"`{GROUP}`" in transport.last_text()


# =============================================================================
# Folder commands
# =============================================================================


@pytest.mark.asyncio
async def test_setfolder_denied_for_non_owner(handler, transport, manager):
    await handler.handle_message(msg(".setfolder F1 123@c.us", sender="555@c.us"))

    assert "Only the bot owner" in transport.last_text()
    assert manager.list_mappings() == {}


@pytest.mark.asyncio
async def test_setfolder_creates_mapping(handler, transport, manager, storage):
    storage.accessible.add("reports/team-a")

    await handler.handle_message(msg(".setfolder reports/team-a 123@c.us weekly"))

    assert "Setup Complete" in transport.last_text()
    mapping = manager.get_mapping("weekly")
    assert mapping.folder_id == "reports/team-a"
    assert mapping.chat_id == "123@c.us"


@pytest.mark.asyncio
async def test_setfolder_validates_chat_id(handler, transport, manager):
    await handler.handle_message(msg(".setfolder F1 not-a-chat"))

    assert "Invalid chat ID" in transport.last_text()
    assert manager.list_mappings() == {}


@pytest.mark.asyncio
async def test_setfolder_reports_inaccessible_folder(handler, transport):
    await handler.handle_message(msg(".setfolder private/folder 123@c.us"))

    assert "Failed to setup auto-fetch" in transport.last_text()
    assert "Cannot access the specified folder" in transport.last_text()


@pytest.mark.asyncio
async def test_setfolder_without_args_shows_usage(handler, transport):
    await handler.handle_message(msg(".setfolder"))

    assert "Usage" in transport.last_text()


@pytest.mark.asyncio
async def test_stopfolder_by_nickname(handler, transport, manager):
    await manager.add_mapping("F1", "123@c.us", "weekly")

    await handler.handle_message(msg(".stopfolder weekly"))

    assert "Auto-Fetch Stopped" in transport.last_text()
    assert manager.list_mappings() == {}


@pytest.mark.asyncio
async def test_stopfolder_unknown(handler, transport):
    await handler.handle_message(msg(".stopfolder ghost"))

    assert "No auto-fetch mapping found for: `ghost`" in transport.last_text()


@pytest.mark.asyncio
async def test_pause_and_resume(handler, transport, manager):
    await manager.add_mapping("F1", "123@c.us", "weekly")

    await handler.handle_message(msg(".pausefolder weekly"))
    assert "Paused" in transport.last_text()
    assert not manager.get_mapping("F1").is_active

    await handler.handle_message(msg(".resumefolder F1"))
    assert "Resumed" in transport.last_text()
    assert manager.is_monitoring("F1")


@pytest.mark.asyncio
async def test_showfolders_lists_active_and_paused(handler, transport, manager, storage):
    storage.accessible.add("F2")
    await manager.add_mapping("F1", "123@c.us", "weekly")
    await manager.add_mapping("F2", "456@c.us", "monthly")
    await manager.toggle_monitoring("monthly", False)

    await handler.handle_message(msg(".showfolders"))
    text = transport.last_text()

    assert "weekly" in text
    assert "Active Monitors: 1" in text
    assert "Check Interval: 60 minutes" in text
    assert "Paused: monthly" in text


@pytest.mark.asyncio
async def test_showfolders_empty(handler, transport):
    await handler.handle_message(msg(".showfolders"))

    assert "No active folder monitors" in transport.last_text()


# =============================================================================
# Owner commands
# =============================================================================


@pytest.mark.asyncio
async def test_ownerset_and_reset(handler, transport, owners):
    await handler.handle_message(msg(".ownerset 12345678", chat_id=GROUP))
    assert "Owner Set Successfully" in transport.last_text()
    assert owners.get_owner(GROUP) == "12345678@c.us"

    await handler.handle_message(msg(".ownerreset", chat_id=GROUP))
    assert "Confirmation" in transport.last_text()
    assert owners.get_owner(GROUP) == "12345678@c.us"

    await handler.handle_message(msg(".ownerreset confirm", chat_id=GROUP))
    assert "Reset Successfully" in transport.last_text()
    assert owners.get_owner(GROUP) is None


@pytest.mark.asyncio
async def test_ownerset_denied_for_non_bot_owner(handler, transport, owners):
    await handler.handle_message(msg(".ownerset 12345678", sender="555@c.us", chat_id=GROUP))

    assert "Only the bot owner" in transport.last_text()
    assert owners.get_owner(GROUP) is None


@pytest.mark.asyncio
async def test_ownerset_uses_mention(handler, transport, owners):
    message = IncomingMessage(
        chat_id=GROUP, sender_id=BOT_OWNER, body=".ownerset @someone", mentions=["777@c.us"]
    )

    await handler.handle_message(message)

    assert owners.get_owner(GROUP) == "777@c.us"


def test_chat_id_formats():
    assert is_valid_chat_id("1234567890@c.us")
    assert is_valid_chat_id("1234567890-1234567890@g.us")
    assert is_valid_chat_id("1234567890@lid")
    assert not is_valid_chat_id("1234567890")
    assert not is_valid_chat_id("abc@c.us")


def test_folder_id_formats():
    assert is_valid_folder_id("reports/team-a")
    assert is_valid_folder_id("1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms")
    assert not is_valid_folder_id("../secrets")
    assert not is_valid_folder_id("/absolute")
    assert not is_valid_folder_id("has space")


def test_all_commands_registered():
    assert set(load_commands()) == {
        "ping", "help", "getchatid", "ownerset", "ownerreset",
        "setfolder", "stopfolder", "showfolders", "pausefolder", "resumefolder",
    }

"""
Folder monitor commands: setfolder, stopfolder, showfolders, pausefolder, resumefolder.

All of them are restricted to the bot owner and map one-to-one onto the
AutoFetchManager lifecycle operations. Failures are reported with the
operator-facing text carried by the OperationResult.
"""

import logging
import re

from models import ErrorCode

from .base import Command, CommandContext

logger = logging.getLogger(__name__)

CHAT_ID_PATTERNS = (
    re.compile(r"^\d+@c\.us$"),      # personal chat
    re.compile(r"^\d+-\d+@g\.us$"),  # group chat
    re.compile(r"^\d+@lid$"),        # linked device
)

_FOLDER_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._/-]{0,199}$")


def is_valid_chat_id(chat_id: str) -> bool:
    return any(pattern.match(chat_id) for pattern in CHAT_ID_PATTERNS)


def is_valid_folder_id(folder_id: str) -> bool:
    """Folder ids are storage prefixes such as `reports/team-a`."""
    return bool(_FOLDER_ID.match(folder_id)) and ".." not in folder_id


class FolderCommand(Command):
    """Shared permission and availability checks."""

    owner_only = True

    async def _authorized(self, ctx: CommandContext) -> bool:
        if not ctx.is_bot_owner:
            logger.warning(f"Unauthorized {self.name} attempt by {ctx.sender_id}")
            await ctx.reply("❌ Only the bot owner can manage folder monitoring!")
            return False
        if ctx.auto_fetch is None:
            await ctx.reply("❌ Auto-fetch system is not available!")
            return False
        return True


class SetFolderCommand(FolderCommand):
    name = "setfolder"
    description = "Start auto-fetching spreadsheets from a folder into a chat"
    usage = "setfolder [folderId] [chatId] [nickname]"

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        if not await self._authorized(ctx):
            return

        if len(args) < 2:
            await ctx.reply(
                "📁 *Set Folder Command Help*\n\n"
                f"📋 *Usage:* `{ctx.prefix}{self.usage}`\n\n"
                "**Example:**\n"
                f"`{ctx.prefix}setfolder reports/team-a 1234567890@c.us reports`\n\n"
                f"💡 Use `{ctx.prefix}getchatid` in the target chat to get its ID."
            )
            return

        folder_id, chat_id = args[0], args[1]
        nickname = args[2] if len(args) > 2 else None

        if not is_valid_chat_id(chat_id):
            await ctx.reply(
                "❌ Invalid chat ID format!\n\nExpected formats:\n"
                "• `1234567890@c.us` (personal)\n"
                "• `1234567890-1234567890@g.us` (group)"
            )
            return

        if not is_valid_folder_id(folder_id):
            await ctx.reply("❌ Invalid folder ID format!\n\nFolder ID should look like: `reports/team-a`")
            return

        await ctx.reply("🔍 Setting up auto-fetch system...")

        result = await ctx.auto_fetch.add_mapping(folder_id, chat_id, nickname)
        if not result.success:
            await ctx.reply(f"❌ Failed to setup auto-fetch: {result.error}")
            return

        mapping = result.mapping
        interval = round(ctx.auto_fetch.check_interval_minutes)
        await ctx.reply(
            "✅ *Auto-Fetch Setup Complete!*\n\n"
            f"📁 *Folder ID:* `{mapping.folder_id}`\n"
            f"💬 *Chat ID:* `{mapping.chat_id}`\n"
            f"🏷️ *Nickname:* {mapping.nickname}\n\n"
            "🔄 *Auto-Monitoring Started*\n"
            f"⏱️ *Check Interval:* {interval} minutes\n"
            "📊 *Latest spreadsheet files will be automatically sent to this chat*\n\n"
            f"💡 Use `{ctx.prefix}showfolders` to see all active monitors"
        )


class StopFolderCommand(FolderCommand):
    name = "stopfolder"
    description = "Stop auto-fetching from a folder"
    usage = "stopfolder [folderId|nickname]"

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        if not await self._authorized(ctx):
            return

        if not args:
            await ctx.reply(
                "📋 *Stop Folder Command Help*\n\n"
                f"*Usage:* `{ctx.prefix}{self.usage}`\n\n"
                "*Examples:*\n"
                f"• `{ctx.prefix}stopfolder reports/team-a` - Stop by folder ID\n"
                f"• `{ctx.prefix}stopfolder reports` - Stop by nickname"
            )
            return

        identifier = args[0]
        result = await ctx.auto_fetch.remove_mapping(identifier)
        if not result.success:
            if result.error_code == ErrorCode.NOT_FOUND:
                await ctx.reply(
                    f"❌ No auto-fetch mapping found for: `{identifier}`\n\n"
                    f"💡 Use `{ctx.prefix}showfolders` to see all active mappings"
                )
            else:
                await ctx.reply(f"❌ Failed to stop monitoring: {result.error}")
            return

        await ctx.reply(
            "✅ *Auto-Fetch Stopped*\n\n"
            f"📁 *Folder:* {result.mapping.nickname}\n"
            "🛑 *Status:* Monitoring stopped\n"
            f"💬 *Chat:* {result.mapping.chat_id}\n\n"
            f"💡 Use `{ctx.prefix}showfolders` to see remaining active monitors"
        )


class ToggleFolderCommand(FolderCommand):
    activate = True

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        if not await self._authorized(ctx):
            return

        if not args:
            await ctx.reply(f"❌ Usage: `{ctx.prefix}{self.usage}`")
            return

        result = await ctx.auto_fetch.toggle_monitoring(args[0], self.activate)
        if not result.success:
            await ctx.reply(f"❌ {result.error}")
            return

        mapping = result.mapping
        if self.activate:
            await ctx.reply(
                f"▶️ *Auto-Fetch Resumed:* {mapping.nickname}\n\n"
                "🔄 Retry counter reset, monitoring restarted"
            )
        else:
            await ctx.reply(
                f"⏸️ *Auto-Fetch Paused:* {mapping.nickname}\n\n"
                f"💡 Use `{ctx.prefix}resumefolder {mapping.nickname}` to resume"
            )


class PauseFolderCommand(ToggleFolderCommand):
    name = "pausefolder"
    description = "Pause auto-fetching from a folder"
    usage = "pausefolder [folderId|nickname]"
    activate = False


class ResumeFolderCommand(ToggleFolderCommand):
    name = "resumefolder"
    description = "Resume a paused folder and reset its retry counter"
    usage = "resumefolder [folderId|nickname]"
    activate = True


class ShowFoldersCommand(FolderCommand):
    name = "showfolders"
    description = "List auto-fetch folder monitors"
    usage = "showfolders"

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        if not await self._authorized(ctx):
            return

        manager = ctx.auto_fetch
        mappings = manager.list_mappings()
        active = [(folder_id, m) for folder_id, m in mappings.items() if m.is_active]
        paused = [m for m in mappings.values() if not m.is_active]
        interval = round(manager.check_interval_minutes)

        lines = ["📁 *Auto-Fetch Folder Monitors*", ""]

        if not active:
            lines += [
                "⚠️ *No active folder monitors*",
                "",
                "▶️ *Setup Auto-Fetch:*",
                f"`{ctx.prefix}setfolder [folderId] [chatId] [nickname]`",
                "",
                f"💡 Latest spreadsheets are sent automatically every {interval} minutes!",
            ]
        else:
            for index, (folder_id, mapping) in enumerate(active, start=1):
                lines.append(f"*{index}.* {mapping.nickname}")
                lines.append(f"📁 Folder ID: `{folder_id[:15]}...`")
                lines.append(f"💬 Chat ID: `{mapping.chat_id}`")
                lines.append(f"⏰ Last Check: {mapping.last_check.strftime('%d/%m/%Y, %H:%M:%S')}")
                if mapping.last_file_name:
                    lines.append(f"📄 Last File: {mapping.last_file_name}")
                lines.append("")

            lines += [
                "📊 *Summary:*",
                f"• Active Monitors: {len(active)}",
                f"• Check Interval: {interval} minutes",
            ]

        if paused:
            lines.append(f"• Paused: {', '.join(m.nickname for m in paused)}")

        await ctx.reply("\n".join(lines))

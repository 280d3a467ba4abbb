"""General commands: ping, help, getchatid."""

import time

from .base import Command, CommandContext


class PingCommand(Command):
    name = "ping"
    description = "Check bot status and response time"
    usage = "ping"

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        started = time.monotonic()
        await ctx.reply("🏓 *Pong!*")
        elapsed_ms = int((time.monotonic() - started) * 1000)
        await ctx.reply(
            f"✅ Status: Active\n🏓 Ping: {elapsed_ms}ms\n⏰ Uptime: {ctx.handler.uptime()}"
        )


class HelpCommand(Command):
    name = "help"
    description = "Show available commands"
    usage = "help [command]"

    EXAMPLES = {
        "ping": "📊 Shows bot status and uptime",
        "getchatid": "📋 Shows current chat ID for folder setup",
        "setfolder": "📁 `.setfolder reports/team-a 1234567890@c.us reports`",
        "stopfolder": "🛑 `.stopfolder reports` (folder ID or nickname)",
        "pausefolder": "⏸️ `.pausefolder reports`",
        "resumefolder": "▶️ `.resumefolder reports`",
    }

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        privileged = ctx.is_bot_owner or ctx.owners.is_owner(ctx.message.chat_id, ctx.sender_id)

        if args:
            await self._command_help(ctx, args[0].lower(), privileged)
            return

        lines = [f"🤖 *{ctx.bot_name} - Commands Help*", "", "📋 *Available Commands:*", ""]
        for command in ctx.handler.command_info():
            if command.owner_only and not privileged:
                continue
            markers = (" 👥" if command.group_only else "") + (" 👑" if command.owner_only else "")
            lines.append(f"🔸 *{ctx.prefix}{command.name}*{markers} - {command.description}")

        lines += [
            "",
            "💡 *Usage Tips:*",
            f"• Use `{ctx.prefix}help [command]` for detailed info",
            f'• Commands start with "{ctx.prefix}"',
            "• 👥 = Group chat only",
        ]
        if privileged:
            lines.append("• 👑 = Owner only")
        await ctx.reply("\n".join(lines))

    async def _command_help(self, ctx: CommandContext, name: str, privileged: bool) -> None:
        command = ctx.handler.commands.get(name)
        if command is None or not command.enabled or (command.owner_only and not privileged):
            await ctx.reply(
                f'❌ Command "{name}" not found!\n\nUse {ctx.prefix}help to see all available commands.'
            )
            return

        text = (
            f"📖 *Command Help: {ctx.prefix}{command.name}*\n\n"
            f"📝 *Description:* {command.description}\n"
            f"🎯 *Usage:* `{ctx.prefix}{command.usage or command.name}`\n"
        )
        if command.group_only:
            text += "👥 *Restriction:* Group chats only\n"
        if command.owner_only:
            text += "👑 *Restriction:* Bot/Group owners only\n"
        if name in self.EXAMPLES:
            text += f"\n💡 *Example:* {self.EXAMPLES[name]}"
        await ctx.reply(text)


class GetChatIdCommand(Command):
    name = "getchatid"
    description = "Show the current chat ID"
    usage = "getchatid"
    owner_only = True

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        chat_id = ctx.message.chat_id
        if not (ctx.is_bot_owner or ctx.owners.is_owner(chat_id, ctx.sender_id)):
            await ctx.reply("❌ Only bot owner or group owners can get chat IDs!")
            return

        chat_type = "Group Chat" if ctx.message.is_group else "Personal Chat"
        await ctx.reply(
            "📋 *Chat ID Information*\n\n"
            f"💬 *Chat ID:* `{chat_id}`\n"
            f"📱 *Chat Type:* {chat_type}\n\n"
            "🔧 *Usage Example:*\n"
            f"• Set auto-fetch: `{ctx.prefix}setfolder [folderId] {chat_id} [nickname]`\n\n"
            "💡 *Tip:* Copy the chat ID above to use in folder mapping commands!"
        )

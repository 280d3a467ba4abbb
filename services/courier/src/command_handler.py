"""
Command Handler - turns incoming chat text into command executions.

Messages starting with the configured prefix are split on whitespace; the
first token (lowercased) selects the command, the rest are its arguments.
A failing command is logged and answered with a generic error; it never
takes the webhook down with it.
"""

import logging
import time
from typing import Optional

from .auto_fetch import AutoFetchManager
from .capabilities import ChatTransport, IncomingMessage
from .commands import Command, CommandContext, load_commands
from .metrics import record_command
from .owner_manager import OwnerManager

logger = logging.getLogger(__name__)

UNKNOWN_COMMAND = (
    "❓ *Unknown command!*\n\n"
    "💡 Use `{prefix}help` to see all available commands\n"
    "🔗 Example: `{prefix}help ping` for specific command info"
)
GROUP_ONLY = "❌ This command can only be used in groups!"
COMMAND_ERROR = "❌ An error occurred while running `{name}`. Please try again later."


class CommandHandler:
    """
    Dispatches prefixed messages to registered commands.

    Usage:
        handler = CommandHandler(transport, owners, auto_fetch=manager)
        await handler.handle_message(IncomingMessage(chat_id, sender_id, ".ping"))
    """

    def __init__(
        self,
        transport: Optional[ChatTransport],
        owners: OwnerManager,
        auto_fetch: Optional[AutoFetchManager] = None,
        prefix: str = ".",
        bot_name: str = "Konoha Bot",
        commands: Optional[dict[str, Command]] = None,
    ):
        self.transport = transport
        self.owners = owners
        self.auto_fetch = auto_fetch
        self.prefix = prefix
        self.bot_name = bot_name
        self.commands = commands if commands is not None else load_commands()
        self.started_at = time.time()

        logger.info(f"Loaded {len(self.commands)} commands: {', '.join(sorted(self.commands))}")

    def _context(self, message: IncomingMessage) -> CommandContext:
        return CommandContext(
            message=message,
            transport=self.transport,
            owners=self.owners,
            handler=self,
            auto_fetch=self.auto_fetch,
            bot_name=self.bot_name,
            prefix=self.prefix,
            started_at=self.started_at,
        )

    async def handle_message(self, message: IncomingMessage) -> bool:
        """
        Handle one incoming message.

        Returns:
            True if the message was addressed to the bot (prefixed)
        """
        content = message.body.strip()
        if not content.startswith(self.prefix):
            return False

        if self.transport is None:
            logger.warning(f"No chat transport configured, ignoring command from {message.chat_id}")
            return False

        tokens = content[len(self.prefix):].split()
        name = tokens[0].lower() if tokens else ""
        args = tokens[1:]

        command = self.commands.get(name)
        if command is None:
            record_command("unknown", "unknown")
            await self.transport.send_text(message.chat_id, UNKNOWN_COMMAND.format(prefix=self.prefix))
            return True

        if not command.enabled:
            return True

        if command.group_only and not message.is_group:
            record_command(name, "denied")
            await self.transport.send_text(message.chat_id, GROUP_ONLY)
            return True

        ctx = self._context(message)
        try:
            logger.info(f"Executing command: {name} from {message.chat_id}")
            await command.execute(ctx, args)
            record_command(name, "success")
        except Exception as e:
            logger.error(f"Error executing command {name}: {e}", exc_info=True)
            record_command(name, "error")
            await self.transport.send_text(message.chat_id, COMMAND_ERROR.format(name=name))

        return True

    def command_info(self) -> list[Command]:
        """Enabled commands sorted by name."""
        return [self.commands[name] for name in sorted(self.commands) if self.commands[name].enabled]

    def uptime(self) -> str:
        seconds = int(time.time() - self.started_at)
        hours, remainder = divmod(seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours}h {minutes}m {seconds}s"

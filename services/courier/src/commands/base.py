"""Command base class and the context every command executes with."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ..capabilities import ChatTransport, IncomingMessage

if TYPE_CHECKING:
    from ..auto_fetch import AutoFetchManager
    from ..command_handler import CommandHandler
    from ..owner_manager import OwnerManager


@dataclass
class CommandContext:
    """Everything a command may touch while handling one message."""

    message: IncomingMessage
    transport: ChatTransport
    owners: "OwnerManager"
    handler: "CommandHandler"
    auto_fetch: Optional["AutoFetchManager"] = None
    bot_name: str = "Konoha Bot"
    prefix: str = "."
    started_at: float = field(default_factory=time.time)

    @property
    def sender_id(self) -> str:
        return self.message.sender_id

    @property
    def is_bot_owner(self) -> bool:
        return self.owners.is_bot_owner(self.sender_id)

    async def reply(self, text: str) -> bool:
        return await self.transport.send_text(self.message.chat_id, text)


class Command(ABC):
    """
    A prefix-triggered chat command.

    Subclasses set the class attributes and implement execute().
    owner_only marks commands hidden from regular users in help output;
    each command enforces its own permission check.
    """

    name: str = ""
    description: str = ""
    usage: str = ""
    group_only: bool = False
    owner_only: bool = False
    enabled: bool = True

    @abstractmethod
    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        """Handle one invocation; args are the whitespace-split words after the name."""

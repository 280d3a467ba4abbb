"""Built-in chat commands."""

from .base import Command, CommandContext
from .folders import (
    PauseFolderCommand,
    ResumeFolderCommand,
    SetFolderCommand,
    ShowFoldersCommand,
    StopFolderCommand,
)
from .general import GetChatIdCommand, HelpCommand, PingCommand
from .owners import OwnerResetCommand, OwnerSetCommand

BUILTIN_COMMANDS = (
    PingCommand,
    HelpCommand,
    GetChatIdCommand,
    OwnerSetCommand,
    OwnerResetCommand,
    SetFolderCommand,
    StopFolderCommand,
    ShowFoldersCommand,
    PauseFolderCommand,
    ResumeFolderCommand,
)


def load_commands() -> dict[str, Command]:
    """Instantiate every built-in command, keyed by name."""
    return {command.name: command for command in (cls() for cls in BUILTIN_COMMANDS)}


__all__ = [
    "BUILTIN_COMMANDS",
    "Command",
    "CommandContext",
    "load_commands",
]

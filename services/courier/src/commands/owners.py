"""Group owner commands: ownerset, ownerreset."""

import logging
import re
from typing import Optional

from .base import Command, CommandContext

logger = logging.getLogger(__name__)

_PHONE_NUMBER = re.compile(r"^@?\+?(\d{6,20})$")


def resolve_user_id(ctx: CommandContext, args: list[str]) -> Optional[str]:
    """Mentioned user, or a phone number argument turned into a chat address."""
    if ctx.message.mentions:
        return ctx.message.mentions[0]
    if args:
        match = _PHONE_NUMBER.match(args[0])
        if match:
            return f"{match.group(1)}@c.us"
        if args[0].endswith("@c.us") or args[0].endswith("@lid"):
            return args[0]
    return None


class OwnerSetCommand(Command):
    name = "ownerset"
    description = "Set the group owner (bot owner only)"
    usage = "ownerset @user"
    group_only = True
    owner_only = True

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        if not ctx.is_bot_owner:
            logger.warning(f"Unauthorized ownerset attempt by {ctx.sender_id}")
            await ctx.reply("❌ Only the bot owner can set group owners!")
            return

        if len(ctx.message.mentions) > 1:
            await ctx.reply("❌ Please mention only one user to set as owner!")
            return

        new_owner = resolve_user_id(ctx, args)
        if new_owner is None:
            await ctx.reply(
                "👑 *Owner Set Command Help*\n\n"
                f"📋 *Usage:* `{ctx.prefix}ownerset @username`\n\n"
                "🔐 *Requirements:*\n"
                "• Must be the bot owner\n"
                "• Can only be used in groups\n\n"
                "💡 *Note:* Only one owner per group. Setting a new owner removes the previous one."
            )
            return

        group_id = ctx.message.chat_id
        current = ctx.owners.get_owner(group_id)
        if current == new_owner:
            await ctx.reply("❌ This user is already the group owner!")
            return

        if not await ctx.owners.set_owner(group_id, new_owner):
            await ctx.reply("❌ Failed to set group owner. Please try again later.")
            return

        text = (
            "👑 *Group Owner Set Successfully!*\n\n"
            f"👤 *New Owner:* @{new_owner.split('@')[0]}\n\n"
            "✅ *Permissions Granted:*\n"
            "• Full bot access in this group\n"
            "• Bot management privileges\n\n"
        )
        if current:
            text += "⚠️ *Previous owner permissions removed*\n\n"
        text += f"🤖 *Set by {ctx.bot_name}*"
        await ctx.reply(text)


class OwnerResetCommand(Command):
    name = "ownerreset"
    description = "Remove the group owner (bot owner only)"
    usage = "ownerreset confirm"
    group_only = True
    owner_only = True

    async def execute(self, ctx: CommandContext, args: list[str]) -> None:
        if not ctx.is_bot_owner:
            logger.warning(f"Unauthorized ownerreset attempt by {ctx.sender_id}")
            await ctx.reply("❌ Only the bot owner can reset group owners!")
            return

        group_id = ctx.message.chat_id
        current = ctx.owners.get_owner(group_id)
        if current is None:
            await ctx.reply("❌ No group owner is currently set for this group!")
            return

        owner_label = f"@{current.split('@')[0]}"
        if not args or args[0].lower() != "confirm":
            await ctx.reply(
                "⚠️ *Owner Reset Confirmation*\n\n"
                f"👤 *Current Owner:* {owner_label}\n\n"
                "🔄 *This will:*\n"
                "• Remove current owner permissions\n"
                "• Reset bot access to group admins only\n\n"
                f"⚡ *To confirm, type:*\n`{ctx.prefix}ownerreset confirm`"
            )
            return

        if not await ctx.owners.remove_owner(group_id):
            await ctx.reply("❌ Failed to reset group owner. Please try again later.")
            return

        await ctx.reply(
            "🔄 *Group Owner Reset Successfully!*\n\n"
            f"👤 *Previous Owner:* {owner_label}\n\n"
            "✅ Group admins now have bot access\n\n"
            f"🤖 *Reset by {ctx.bot_name}*"
        )

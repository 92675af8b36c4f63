"""Small Discord helpers shared by the cogs."""

from __future__ import annotations

from typing import List, Union

import discord

DISCORD_MESSAGE_LIMIT = 2000


def is_bot_author(author: Union[discord.User, discord.Member]) -> bool:
    return bool(getattr(author, "bot", False))


def has_permissions(application_context: discord.ApplicationContext, **required_permissions) -> bool:
    """
    Check if the command issuer has all specified permissions in the guild.

    Args:
        application_context (discord.ApplicationContext): The command context.
        **required_permissions: Permission flags to check.

    Returns:
        bool: True if all permissions are present, False otherwise.
    """
    if not isinstance(application_context.author, discord.Member):
        return False
    permissions = application_context.author.guild_permissions
    return all(getattr(permissions, permission_name, False) for permission_name in required_permissions)


def chunk_message(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """
    Split ``text`` into pieces no longer than ``limit`` characters.

    Splits prefer the last newline, then the last space, before the limit;
    a single unbroken run longer than ``limit`` is cut hard.
    """
    remaining = text.strip()
    chunks: List[str] = []
    while len(remaining) > limit:
        cut = remaining.rfind("\n", 0, limit)
        if cut <= 0:
            cut = remaining.rfind(" ", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(remaining[:cut].rstrip())
        remaining = remaining[cut:].lstrip()
    if remaining:
        chunks.append(remaining)
    return chunks

"""
discord_utils.py
================

Low-level Discord helpers for Rostercord: pinned-message upkeep,
interaction replies, permission checks and member lookup. Nothing here
keeps state.
"""

from typing import Optional

import discord

from rostercord.util.logger import get_logger

logger = get_logger("discord_utils")


async def find_own_pinned_message(channel: discord.TextChannel, bot_user_id: int) -> Optional[discord.Message]:
    """Return the first pinned message in ``channel`` authored by the bot, if any."""
    pins = await channel.pins()
    for message in pins:
        if message.author.id == bot_user_id:
            return message
    return None


async def upsert_pinned_message(
    channel: discord.TextChannel,
    bot_user_id: int,
    content: str,
    view: Optional[discord.ui.View] = None,
) -> discord.Message:
    """
    Edit the bot's pinned message in ``channel`` or send and pin a new one.

    Args:
        channel: Channel holding the pinned message.
        bot_user_id: Id of the bot user, used to recognise its own pin.
        content: New message content.
        view: Optional persistent view to attach.

    Returns:
        discord.Message: The edited or newly pinned message.
    """
    message = await find_own_pinned_message(channel, bot_user_id)
    if message is not None:
        await message.edit(content=content, view=view)
        return message

    message = await channel.send(content=content, view=view)
    try:
        await message.pin()
    except discord.HTTPException as exc:
        logger.warning("Could not pin message in #%s: %s", channel.name, exc)
    return message


async def send_ephemeral(interaction: discord.Interaction, content: str) -> None:
    """
    Reply ephemerally, falling back to a followup if the interaction was already acknowledged.

    A second acknowledgement of the same interaction is ignored.
    """
    try:
        if interaction.response.is_done():
            await interaction.followup.send(content, ephemeral=True)
        else:
            await interaction.response.send_message(content, ephemeral=True)
    except discord.InteractionResponded:
        logger.debug("Interaction %s already acknowledged; dropping reply", getattr(interaction, "id", "?"))


async def defer_ephemeral(interaction: discord.Interaction) -> None:
    """Acknowledge the interaction so slow role and message updates do not time it out."""
    try:
        if not interaction.response.is_done():
            await interaction.response.defer(ephemeral=True)
    except discord.InteractionResponded:
        logger.debug("Interaction %s already acknowledged; not deferring", getattr(interaction, "id", "?"))


async def respond_ephemeral(application_context: discord.ApplicationContext, content: str) -> None:
    """Slash-command counterpart of :func:`send_ephemeral`."""
    try:
        await application_context.respond(content, ephemeral=True)
    except discord.InteractionResponded:
        await application_context.followup.send(content, ephemeral=True)


def has_permissions(application_context: discord.ApplicationContext, **required_permissions) -> bool:
    """
    Check if the command issuer has all specified permissions in the guild.

    Args:
        application_context (discord.ApplicationContext): The command context.
        **required_permissions: Permission flags to check.

    Returns:
        bool: True if all permissions are present, False otherwise.
    """
    permissions = getattr(application_context.author, "guild_permissions", None)
    if permissions is None:
        return False
    return all(getattr(permissions, permission_name, False) for permission_name in required_permissions)


async def resolve_member(guild: discord.Guild, user_id: int) -> Optional[discord.Member]:
    """Return the member from cache, fetching it if needed; None if they left."""
    member = guild.get_member(user_id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(user_id)
    except discord.NotFound:
        return None

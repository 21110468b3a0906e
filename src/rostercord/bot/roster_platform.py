"""
py-cord implementation of the roster engine's platform collaborator.

Translates logical role keys to concrete roles through the handle cache,
mutates member roles, sends DMs and keeps the pinned roster summary in the
party-finder channel up to date.
"""

from __future__ import annotations

import datetime
from typing import Dict, Optional, Sequence

import discord

from rostercord.configuration.roster_config import RosterConfig
from rostercord.datatypes.discord_datatypes import GuildID, UserID
from rostercord.datatypes.roster_datatypes import RoleMissingError, RosterEntry
from rostercord.roster.roster_handles import RosterHandleCache
from rostercord.roster.roster_render import MemberSnapshot, render_summary_for_config
from rostercord.ui.roster_ui import RosterSummaryView
from rostercord.util.discord_utils import resolve_member, upsert_pinned_message
from rostercord.util.logger import get_logger

logger = get_logger("roster_platform")


class DiscordRosterPlatform:
    """Role, DM and summary side effects against a live ``discord.Bot``.

    Args:
        bot: Connected bot instance.
        config: Roster settings.
        handles: Resolved identifier cache filled by provisioning.
        summary_view: Persistent view attached to the summary message.
    """

    def __init__(
        self,
        bot: discord.Bot,
        config: RosterConfig,
        handles: RosterHandleCache,
        summary_view: Optional[RosterSummaryView] = None,
    ) -> None:
        self.bot = bot
        self.config = config
        self.handles = handles
        self.summary_view = summary_view

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _guild(self, guild_id: GuildID) -> discord.Guild:
        guild = self.bot.get_guild(guild_id.to_int())
        if guild is None:
            raise LookupError(f"Guild {guild_id} is not available to the bot")
        return guild

    def _role(self, guild: discord.Guild, guild_id: GuildID, role_key: str) -> discord.Role:
        handles = self.handles.require(guild_id, role_key)
        role = guild.get_role(handles.role_id(role_key).to_int())
        if role is None:
            raise RoleMissingError(guild_id, role_key)
        return role

    async def _member(self, guild: discord.Guild, user_id: UserID) -> Optional[discord.Member]:
        member = await resolve_member(guild, user_id.to_int())
        if member is None:
            logger.debug("[PLATFORM] Member %s is no longer in guild %s", user_id, guild.id)
        return member

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def has_role(self, guild_id: GuildID, user_id: UserID, role_key: str) -> bool:
        guild = self._guild(guild_id)
        role = self._role(guild, guild_id, role_key)
        member = await self._member(guild, user_id)
        return member is not None and role in member.roles

    async def grant_role(self, guild_id: GuildID, user_id: UserID, role_key: str) -> bool:
        """Add the role unless the member already holds it. Returns True if it changed."""
        guild = self._guild(guild_id)
        role = self._role(guild, guild_id, role_key)
        member = await self._member(guild, user_id)
        if member is None or role in member.roles:
            return False
        await member.add_roles(role, reason="Roster clock-in")
        logger.debug("[PLATFORM] Granted %s to %s", role.name, member.display_name)
        return True

    async def revoke_role(self, guild_id: GuildID, user_id: UserID, role_key: str) -> bool:
        """Remove the role if the member holds it. Returns True if it changed."""
        guild = self._guild(guild_id)
        role = self._role(guild, guild_id, role_key)
        member = await self._member(guild, user_id)
        if member is None or role not in member.roles:
            return False
        await member.remove_roles(role, reason="Roster clock-out")
        logger.debug("[PLATFORM] Removed %s from %s", role.name, member.display_name)
        return True

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def notify_user(self, guild_id: GuildID, user_id: UserID, text: str) -> None:
        guild = self._guild(guild_id)
        member = await self._member(guild, user_id)
        if member is None:
            return
        await member.send(text)

    def member_snapshots(self, guild: discord.Guild, entries: Sequence[RosterEntry]) -> Dict[UserID, MemberSnapshot]:
        """Current display names and role names of cached roster members."""
        snapshots: Dict[UserID, MemberSnapshot] = {}
        for entry in entries:
            member = guild.get_member(entry.user_id.to_int())
            if member is None:
                continue
            snapshots[entry.user_id] = MemberSnapshot(
                display_name=member.display_name,
                role_names=tuple(role.name for role in member.roles),
            )
        return snapshots

    async def publish_summary(self, guild_id: GuildID, entries: Sequence[RosterEntry], now: datetime.datetime) -> None:
        """Render the roster and upsert the pinned summary in the party-finder channel."""
        guild = self._guild(guild_id)
        handles = self.handles.get(guild_id)
        if handles is None:
            logger.warning("[PLATFORM] Guild %s is not provisioned; summary not published", guild_id)
            return

        channel = guild.get_channel(handles.party_finder_channel_id.to_int())
        if not isinstance(channel, discord.TextChannel):
            logger.warning("[PLATFORM] Party-finder channel missing in guild %s", guild.name)
            return

        content = render_summary_for_config(entries, now, self.config, self.member_snapshots(guild, entries))
        await upsert_pinned_message(channel, self.bot.user.id, content, view=self.summary_view)

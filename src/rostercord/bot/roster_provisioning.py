"""
Per-guild roster bootstrap.

Ensures the active-marker role, the preference roles and both managed
channels exist with their permission overwrites, records their ids in the
handle cache, then upserts the pinned clock-station message and the pinned
roster summary. Every step starts with a lookup, so running it again on a
provisioned guild only refreshes the cache and the two messages.
"""

from __future__ import annotations

from typing import Optional

import discord

from rostercord.configuration.roster_config import RosterConfig
from rostercord.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from rostercord.datatypes.roster_datatypes import ACTIVE_ROLE_KEY
from rostercord.roster.roster_engine import RosterEngine
from rostercord.roster.roster_handles import GuildRosterHandles, RosterHandleCache
from rostercord.roster.roster_render import render_clock_station
from rostercord.ui.roster_ui import ClockStationView
from rostercord.util.discord_utils import upsert_pinned_message
from rostercord.util.logger import get_logger

logger = get_logger("roster_provisioning")

CLOCKED_IN_ROLE_COLOUR = 0x00FF00
CLOCK_CHANNEL_TOPIC = "Clock in/out station - Use the buttons below to manage your status"
PARTY_FINDER_TOPIC = "Party finder - Only visible to clocked-in users"


class RosterProvisioner:
    """Creates or verifies the roster setup of a guild.

    Args:
        config: Roster settings.
        handles: Cache that receives the resolved ids.
        engine: Used to render the initial summary.
        clock_station_view: Persistent view attached to the clock-station message.
    """

    def __init__(
        self,
        config: RosterConfig,
        handles: RosterHandleCache,
        engine: RosterEngine,
        clock_station_view: Optional[ClockStationView] = None,
    ) -> None:
        self.config = config
        self.handles = handles
        self.engine = engine
        self.clock_station_view = clock_station_view

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def ensure_role(self, guild: discord.Guild, name: str, *, colour: Optional[int] = None) -> discord.Role:
        role = discord.utils.get(guild.roles, name=name)
        if role is not None:
            return role

        logger.info("[PROVISIONING] Creating role %s in %s", name, guild.name)
        kwargs = {"name": name, "mentionable": False, "reason": "Roster setup"}
        if colour is not None:
            kwargs["colour"] = discord.Colour(colour)
        return await guild.create_role(**kwargs)

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def clock_channel_overwrites(self, guild: discord.Guild) -> dict:
        """Everyone can read the clock station; only the bot posts."""
        return {
            guild.default_role: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=False,
                read_message_history=True,
                use_external_emojis=True,
            ),
            guild.me: discord.PermissionOverwrite(view_channel=True, send_messages=True, manage_messages=True),
        }

    def party_finder_overwrites(self, guild: discord.Guild, active_role: discord.Role) -> dict:
        """Hidden from everyone except clocked-in members and the bot."""
        return {
            guild.default_role: discord.PermissionOverwrite(view_channel=False, send_messages=False),
            active_role: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                use_external_emojis=True,
            ),
            guild.me: discord.PermissionOverwrite(view_channel=True, send_messages=True, manage_messages=True),
        }

    async def ensure_text_channel(
        self,
        guild: discord.Guild,
        name: str,
        *,
        topic: str,
        overwrites: dict,
    ) -> discord.TextChannel:
        channel = discord.utils.get(guild.text_channels, name=name)
        if channel is not None:
            return channel

        logger.info("[PROVISIONING] Creating channel #%s in %s", name, guild.name)
        return await guild.create_text_channel(name, topic=topic, overwrites=overwrites, reason="Roster setup")

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def ensure_guild(self, guild: discord.Guild) -> GuildRosterHandles:
        """Provision one guild and return its resolved handles."""
        logger.info("[PROVISIONING] Initializing roster system for %s", guild.name)

        active_role = await self.ensure_role(guild, self.config.clocked_in_role_name, colour=CLOCKED_IN_ROLE_COLOUR)
        role_ids = {ACTIVE_ROLE_KEY: RoleID.from_role(active_role)}
        for tag, label in self.config.preference_tags.items():
            role_ids[tag] = RoleID.from_role(await self.ensure_role(guild, label))

        clock_channel = await self.ensure_text_channel(
            guild,
            self.config.clock_channel_name,
            topic=CLOCK_CHANNEL_TOPIC,
            overwrites=self.clock_channel_overwrites(guild),
        )
        party_finder = await self.ensure_text_channel(
            guild,
            self.config.party_finder_channel_name,
            topic=PARTY_FINDER_TOPIC,
            overwrites=self.party_finder_overwrites(guild, active_role),
        )

        handles = GuildRosterHandles(
            guild_id=GuildID.from_guild(guild),
            clock_channel_id=ChannelID.from_channel(clock_channel),
            party_finder_channel_id=ChannelID.from_channel(party_finder),
            role_ids=role_ids,
        )
        self.handles.store(handles)

        await upsert_pinned_message(
            clock_channel,
            guild.me.id,
            render_clock_station(self.config),
            view=self.clock_station_view,
        )
        await self.engine.refresh_summary(handles.guild_id)

        logger.info("[PROVISIONING] Roster system ready for %s", guild.name)
        return handles

"""
Roster cog: button handlers and roster slash commands.

Buttons (routed here by the persistent views):
- Clock In / Clock Out, usable in the clock-station and party-finder channels
- one toggle per preference tag plus Clear, on the clock station

Slash commands:
- /roster: show who is clocked in right now (ephemeral)
- /clear-roster: clock everybody out (Manage Messages)
- /roster-setup: re-run provisioning for this server (Manage Server)

Every reply is ephemeral. Unexpected failures are logged and reported with
a generic message; they never propagate out of a handler.
"""

from __future__ import annotations

import discord
from discord.ext import commands

from rostercord.bot.roster_runtime import RosterRuntime
from rostercord.datatypes.discord_datatypes import GuildID, UserID
from rostercord.datatypes.roster_datatypes import (
    ACTIVE_ROLE_KEY,
    RoleMissingError,
    RosterStatus,
    utcnow,
)
from rostercord.roster.roster_handles import GuildRosterHandles
from rostercord.roster.roster_render import format_remaining, render_summary_for_config
from rostercord.util.discord_utils import defer_ephemeral, has_permissions, respond_ephemeral, send_ephemeral
from rostercord.util.logger import get_logger

logger = get_logger("roster_cog")

GUILD_ONLY_MESSAGE = "This can only be used in a server."
ROLE_MISSING_MESSAGE = "Error: Clocked In role not found. Please contact an administrator."
PREFERENCE_ROLE_MISSING_MESSAGE = "Error: That preference role is not set up. Please contact an administrator."
GENERIC_FAILURE_MESSAGE = "An error occurred while processing your request."


class RosterCog(commands.Cog):
    """Clock in / clock out handlers backed by the roster engine."""

    def __init__(self, discord_bot_instance, runtime: RosterRuntime):
        self.discord_bot_instance = discord_bot_instance
        self.runtime = runtime
        logger.info("Roster cog loaded")

    @property
    def engine(self):
        return self.runtime.engine

    @property
    def config(self):
        return self.runtime.config

    # ------------------------------------------------------------------
    # Shared checks
    # ------------------------------------------------------------------

    async def _resolve_button_context(self, interaction: discord.Interaction) -> GuildRosterHandles | None:
        """Validate guild, channel and active role; reply and return None if invalid."""
        if interaction.guild is None or interaction.user is None:
            await send_ephemeral(interaction, GUILD_ONLY_MESSAGE)
            return None

        handles = self.runtime.handles.get(interaction.guild.id)
        channel_id = getattr(interaction.channel, "id", None)
        if handles is not None and not handles.is_managed_channel(channel_id):
            await send_ephemeral(
                interaction,
                f"This button can only be used in #{self.config.clock_channel_name} "
                f"or #{self.config.party_finder_channel_name}.",
            )
            return None

        try:
            handles = self.runtime.handles.require(interaction.guild.id, ACTIVE_ROLE_KEY)
        except RoleMissingError as exc:
            logger.error("[ROSTER COG] %s", exc)
            await send_ephemeral(interaction, ROLE_MISSING_MESSAGE)
            return None

        if interaction.guild.get_role(handles.role_id(ACTIVE_ROLE_KEY).to_int()) is None:
            logger.error("[ROSTER COG] Clocked In role was deleted in guild %s", interaction.guild.name)
            await send_ephemeral(interaction, ROLE_MISSING_MESSAGE)
            return None
        return handles

    async def _report_failure(self, interaction: discord.Interaction, action: str, exc: Exception) -> None:
        logger.error("[ROSTER COG] Error handling %s: %s", action, exc, exc_info=True)
        await send_ephemeral(interaction, GENERIC_FAILURE_MESSAGE)

    def _hours_text(self) -> str:
        hours = self.config.auto_clock_out_hours
        return f"{hours:g} hour" + ("" if hours == 1 else "s")

    # ------------------------------------------------------------------
    # Button handlers
    # ------------------------------------------------------------------

    async def handle_clock_in(self, interaction: discord.Interaction) -> None:
        if await self._resolve_button_context(interaction) is None:
            return

        user = interaction.user
        try:
            await defer_ephemeral(interaction)
            result = await self.engine.clock_in(
                UserID(user.id),
                GuildID(interaction.guild.id),
                getattr(user, "display_name", str(user)),
            )
        except Exception as exc:
            await self._report_failure(interaction, "clock in", exc)
            return

        if result.status is RosterStatus.ALREADY_ACTIVE:
            until = discord.utils.format_dt(result.entry.clock_out_time, style="t")
            await send_ephemeral(
                interaction,
                f"You're already clocked in! You'll be automatically clocked out at {until} "
                f"({format_remaining(result.remaining)} left).",
            )
            return

        await send_ephemeral(
            interaction,
            f"✅ You've been clocked in! You'll be automatically clocked out after {self._hours_text()}.\n\n"
            f"You now have access to #{self.config.party_finder_channel_name}!",
        )

    async def handle_clock_out(self, interaction: discord.Interaction) -> None:
        if await self._resolve_button_context(interaction) is None:
            return

        try:
            await defer_ephemeral(interaction)
            result = await self.engine.clock_out(UserID(interaction.user.id), GuildID(interaction.guild.id))
        except Exception as exc:
            await self._report_failure(interaction, "clock out", exc)
            return

        if result.status is RosterStatus.NOT_ACTIVE:
            await send_ephemeral(interaction, "You're not currently clocked in.")
            return
        await send_ephemeral(interaction, "👋 You have been clocked out successfully!")

    async def handle_preference(self, interaction: discord.Interaction, tag: str) -> None:
        if await self._resolve_button_context(interaction) is None:
            return

        try:
            await defer_ephemeral(interaction)
            result = await self.engine.toggle_preference(
                UserID(interaction.user.id), GuildID(interaction.guild.id), tag
            )
        except RoleMissingError as exc:
            logger.error("[ROSTER COG] %s", exc)
            await send_ephemeral(interaction, PREFERENCE_ROLE_MISSING_MESSAGE)
            return
        except Exception as exc:
            await self._report_failure(interaction, f"preference {tag}", exc)
            return

        label = self.config.preference_tags.get(result.tag, result.tag)
        messages = {
            RosterStatus.NOT_ACTIVE: "You need to be clocked in to set preferences.",
            RosterStatus.UNKNOWN_TAG: f"Unknown preference '{result.tag}'.",
            RosterStatus.ADDED: f"Added preference **{label}**.",
            RosterStatus.REMOVED: f"Removed preference **{label}**.",
        }
        if result.status is RosterStatus.CLEARED:
            message = (
                f"Cleared {result.changed} preference(s)." if result.changed
                else "You don't have any preferences set."
            )
        else:
            message = messages[result.status]
        await send_ephemeral(interaction, message)

    # ------------------------------------------------------------------
    # Slash commands
    # ------------------------------------------------------------------

    @commands.slash_command(name="roster", description="Show who is clocked in right now.")
    async def roster(self, application_context: discord.ApplicationContext):
        """Reply with the current roster summary."""
        if application_context.guild_id is None:
            await respond_ephemeral(application_context, GUILD_ONLY_MESSAGE)
            return

        now = utcnow()
        entries = await self.engine.active_entries(GuildID(application_context.guild_id), now)
        snapshots = {}
        if application_context.guild is not None:
            snapshots = self.runtime.platform.member_snapshots(application_context.guild, entries)
        content = render_summary_for_config(entries, now, self.config, snapshots)
        await respond_ephemeral(application_context, content)

    @commands.slash_command(
        name="clear-roster",
        description="Clear all users from the roster (Admin only)",
        default_member_permissions=discord.Permissions(manage_messages=True),
    )
    async def clear_roster(self, application_context: discord.ApplicationContext):
        """Clock out everybody in this server."""
        if application_context.guild_id is None:
            await respond_ephemeral(application_context, GUILD_ONLY_MESSAGE)
            return
        if not has_permissions(application_context, manage_messages=True):
            await respond_ephemeral(application_context, "You need the Manage Messages permission to clear the roster.")
            return

        await application_context.defer(ephemeral=True)
        result = await self.engine.clear_all(GuildID(application_context.guild_id))
        if result.removed_count == 0:
            await respond_ephemeral(application_context, "The roster is already empty.")
            return
        await respond_ephemeral(
            application_context,
            f"🧹 Cleared {result.removed_count} roster entr{'y' if result.removed_count == 1 else 'ies'} "
            f"and removed the {self.config.clocked_in_role_name} role from {result.role_revocations} member(s).",
        )

    @commands.slash_command(
        name="roster-setup",
        description="Create or repair the roster channels, roles and pinned messages.",
        default_member_permissions=discord.Permissions(manage_guild=True),
    )
    async def roster_setup(self, application_context: discord.ApplicationContext):
        """Re-run provisioning for this server and refresh the cached ids."""
        if application_context.guild is None:
            await respond_ephemeral(application_context, GUILD_ONLY_MESSAGE)
            return
        if not has_permissions(application_context, manage_guild=True):
            await respond_ephemeral(application_context, "You need the Manage Server permission to set up the roster.")
            return

        await application_context.defer(ephemeral=True)
        handles = await self.runtime.provisioner.ensure_guild(application_context.guild)
        await respond_ephemeral(
            application_context,
            f"Roster system is ready: <#{handles.clock_channel_id}> and <#{handles.party_finder_channel_id}>.",
        )


def setup(discord_bot_instance, runtime: RosterRuntime):
    """Add the roster cog to the supplied Discord bot instance."""
    discord_bot_instance.add_cog(RosterCog(discord_bot_instance, runtime))

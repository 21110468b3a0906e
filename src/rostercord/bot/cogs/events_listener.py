"""Event listener Cog for Rostercord.

Handles bot lifecycle events (ready, guild join/leave) and slash command
error reporting. Roster interactions live in the roster cog.
"""

import discord
from discord.ext import commands

from rostercord.bot.roster_runtime import RosterRuntime
from rostercord.util.logger import get_logger

logger = get_logger("events_listener_cog")

ROSTER_COG_NAME = "RosterCog"


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle and command error handlers."""

    def __init__(self, discord_bot_instance, runtime: RosterRuntime):
        """Initialize the events listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        runtime:
            Roster components shared with the other cogs.
        """
        self.bot = discord_bot_instance
        self.runtime = runtime
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name='on_ready')
    async def on_ready(self):
        """Register persistent views and provision every guild.

        on_ready can fire again after a reconnect; views are registered only
        once, while provisioning re-runs and refreshes the cached ids.
        """
        if self.bot.user:
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")
        logger.info("Connected to %d server(s)", len(self.bot.guilds))

        roster_cog = self.bot.get_cog(ROSTER_COG_NAME)
        if roster_cog is None:
            logger.error("Roster cog is not loaded; buttons will not respond.")
        else:
            self.runtime.attach_views(self.bot, roster_cog)

        await self._update_presence()

        provisioned = await self.runtime.provision_guilds(self.bot.guilds)
        logger.info("Roster system initialized for %d/%d server(s)", provisioned, len(self.bot.guilds))

    async def _update_presence(self) -> None:
        if not self.bot.user:
            return

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name=f"#{self.runtime.config.party_finder_channel_name}",
            ),
        )

    @commands.Cog.listener(name='on_guild_join')
    async def on_guild_join(self, guild: discord.Guild):
        """Provision a server the bot was just added to."""
        logger.info("Joined guild %s (%s)", guild.name, guild.id)
        await self.runtime.provision_guilds([guild])

    @commands.Cog.listener(name='on_guild_remove')
    async def on_guild_remove(self, guild: discord.Guild):
        self.runtime.handles.forget(guild.id)
        logger.info("Removed from guild %s (%s)", guild.name, guild.id)

    @commands.Cog.listener(name='on_application_command_error')
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Handle errors from application commands with logging and user feedback.

        Parameters
        ----------
        application_context:
            The command invocation context.
        error:
            The exception raised during command execution.
        """
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, 'name', '<unknown>')
        logger.error(f"Error in command '{command_name}': {error}", exc_info=error)

        error_message = "A :bug: showed up while running this command."
        try:
            await application_context.respond(error_message, ephemeral=True)
        except discord.InteractionResponded:
            await application_context.followup.send(error_message, ephemeral=True)


def setup(discord_bot_instance, runtime: RosterRuntime):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, runtime))

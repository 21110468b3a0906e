"""
Wiring of the roster components for one bot process.

``RosterRuntime.build`` constructs the handle cache, the Discord platform
adapter, the engine and the provisioner from an explicit config and
database. Cogs receive the runtime in their constructor instead of
importing module-level singletons.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import discord

from rostercord.bot.roster_platform import DiscordRosterPlatform
from rostercord.bot.roster_provisioning import RosterProvisioner
from rostercord.configuration.roster_config import RosterConfig
from rostercord.database.database import Database
from rostercord.roster.roster_engine import RosterEngine
from rostercord.roster.roster_handles import RosterHandleCache
from rostercord.ui.roster_ui import ClockStationView, RosterInteractionHandler, RosterSummaryView
from rostercord.util.logger import get_logger

logger = get_logger("roster_runtime")


@dataclass
class RosterRuntime:
    config: RosterConfig
    database: Database
    handles: RosterHandleCache
    platform: DiscordRosterPlatform
    engine: RosterEngine
    provisioner: RosterProvisioner
    views_attached: bool = False

    @classmethod
    def build(cls, bot: discord.Bot, config: RosterConfig, database: Database) -> "RosterRuntime":
        handles = RosterHandleCache()
        platform = DiscordRosterPlatform(bot, config, handles)
        engine = RosterEngine(config, database.connection, platform)
        provisioner = RosterProvisioner(config, handles, engine)
        return cls(
            config=config,
            database=database,
            handles=handles,
            platform=platform,
            engine=engine,
            provisioner=provisioner,
        )

    def attach_views(self, bot: discord.Bot, handler: RosterInteractionHandler) -> None:
        """Create the persistent views once and register them with the bot.

        Must run inside the event loop (views create futures on init).
        """
        if self.views_attached:
            return

        clock_view = ClockStationView(handler, self.config.preference_tags)
        summary_view = RosterSummaryView(handler)
        bot.add_view(clock_view)
        bot.add_view(summary_view)
        self.provisioner.clock_station_view = clock_view
        self.platform.summary_view = summary_view
        self.views_attached = True
        logger.info("[RUNTIME] Persistent roster views registered")

    async def provision_guilds(self, guilds: Iterable[discord.Guild]) -> int:
        """Provision every guild; failures are logged per guild. Returns the number provisioned."""
        provisioned = 0
        for guild in guilds:
            try:
                await self.provisioner.ensure_guild(guild)
                provisioned += 1
            except Exception as exc:
                logger.error("[RUNTIME] Failed to initialize roster system for %s: %s", guild.name, exc)
        return provisioned

"""Background roster sweep.

A ``tasks.loop`` that expires stale roster entries for every guild the bot
is in. The real interval comes from ``cleanup_interval_minutes`` and is
applied in ``on_ready``. A failing guild is logged and skipped; the next
tick retries it.
"""

from __future__ import annotations

import asyncio

import discord
from discord.ext import commands, tasks

from rostercord.bot.roster_runtime import RosterRuntime
from rostercord.datatypes.discord_datatypes import GuildID
from rostercord.util.logger import get_logger

logger = get_logger("roster_sweep")


class RosterSweepCog(commands.Cog):
    """Runs ``RosterEngine.reconcile_expired`` for every guild on a fixed interval."""

    def __init__(self, bot: discord.Bot, runtime: RosterRuntime) -> None:
        self.bot = bot
        self.runtime = runtime

    async def sweep_all(self) -> int:
        """Sweep every guild once. Returns the total number of expired entries."""
        total = 0
        for guild in self.bot.guilds:
            try:
                expired = await self.runtime.engine.reconcile_expired(GuildID(guild.id))
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("[ROSTER SWEEP] Failed to clean up roster for %s: %s", guild.name, exc)
                continue
            if expired:
                logger.info("[ROSTER SWEEP] Cleaned up %d expired entries for %s", len(expired), guild.name)
            total += len(expired)
        return total

    @tasks.loop(minutes=5)  # real interval set in on_ready
    async def _sweep_task(self) -> None:
        logger.debug("[ROSTER SWEEP] Running periodic roster cleanup")
        await self.sweep_all()

    @_sweep_task.before_loop
    async def _before_sweep(self) -> None:
        await self.bot.wait_until_ready()

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        interval = self.runtime.config.cleanup_interval_minutes
        self._sweep_task.change_interval(minutes=interval)
        if not self._sweep_task.is_running():
            self._sweep_task.start()
            logger.info("[ROSTER SWEEP] Started (interval=%.1f min)", interval)

    def cog_unload(self) -> None:
        self._sweep_task.cancel()
        logger.info("[ROSTER SWEEP] Stopped")


def setup(bot: discord.Bot, runtime: RosterRuntime) -> None:
    bot.add_cog(RosterSweepCog(bot, runtime))

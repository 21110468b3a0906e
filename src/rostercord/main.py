"""
Rostercord
==========

A Discord bot that keeps a live "who's playing" roster: members clock in
with a button, get a temporary role and party-finder access, and are clocked
out automatically once their session runs out.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. ROSTERCORD_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("ROSTERCORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from rostercord.bot.roster_runtime import RosterRuntime
from rostercord.configuration.app_configuration import AppConfig
from rostercord.configuration.roster_config import RosterConfig
from rostercord.database.database import Database
from rostercord.datatypes.roster_datatypes import ConfigurationError
from rostercord.util.logger import get_logger, handle_exception


logger = get_logger("main")

SWEEP_COG_NAME = "RosterSweepCog"


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents the roster needs.

    Returns
    -------
    discord.Intents
        Default intents plus guilds and members (role changes and DMs).
    """
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, runtime: RosterRuntime) -> None:
    """Register all operational cogs with the provided Discord bot instance.

    Parameters
    ----------
    discord_bot_instance:
        Py-Cord bot object that should receive the Rostercord cogs.
    runtime:
        Roster components handed to every cog.
    """
    from rostercord.bot.cogs import events_listener, roster_cmds, roster_sweep

    roster_cmds.setup(discord_bot_instance, runtime)
    events_listener.setup(discord_bot_instance, runtime)
    roster_sweep.setup(discord_bot_instance, runtime)

    logger.info("All cogs loaded successfully.")


def create_bot(config: RosterConfig, database: Database) -> tuple[discord.Bot, RosterRuntime]:
    """Instantiate the Discord bot, build the roster runtime and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    runtime = RosterRuntime.build(bot, config, database)
    load_cogs(bot, runtime)
    return bot, runtime


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, database: Database) -> None:
    """Stop the sweep, close the Discord connection and the database.

    Parameters
    ----------
    bot:
        Optional bot instance to close before shutting down subsystems.
    database:
        Database whose connection is closed last.
    """
    if bot is not None:
        if bot.get_cog(SWEEP_COG_NAME) is not None:
            bot.remove_cog(SWEEP_COG_NAME)
        if not bot.is_closed():
            try:
                await bot.close()
                logger.info("Discord bot connection closed.")
            except Exception as exc:
                logger.exception("Error while closing Discord bot: %s", exc)

    try:
        await database.shutdown()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap config, database and bot, returning an exit code."""
    token = load_environment()

    try:
        app_config = AppConfig()
        roster_config = app_config.roster
    except ConfigurationError as exc:
        logger.critical("Invalid roster configuration: %s", exc)
        return 1

    database = Database(roster_config.collection_name)
    logger.info("Initializing roster database...")
    if not await database.initialize():
        logger.critical("Failed to initialize database")
        return 1

    try:
        bot, _runtime = create_bot(roster_config, database)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await shutdown_runtime(None, database)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, database)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    logger.info("Starting Rostercord…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())

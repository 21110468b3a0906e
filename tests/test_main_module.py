import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from rostercord import main


@pytest.fixture(autouse=True)
def _restore_env(monkeypatch):
    original_env = os.environ.copy()
    original_cwd = os.getcwd()
    yield
    os.environ.clear()
    os.environ.update(original_env)
    os.chdir(original_cwd)


def test_resolve_base_dir_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("ROSTERCORD_HOME", str(tmp_path))

    resolved = main.resolve_base_dir()

    assert resolved == tmp_path.resolve()


def test_resolve_base_dir_compiled(tmp_path, monkeypatch):
    monkeypatch.delenv("ROSTERCORD_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "rostercord.exe")])

    resolved = main.resolve_base_dir()

    assert resolved == tmp_path.resolve()


def test_resolve_base_dir_source(monkeypatch):
    monkeypatch.delenv("ROSTERCORD_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", False, raising=False)
    monkeypatch.setattr(sys, "compiled", False, raising=False)

    resolved = main.resolve_base_dir()

    assert resolved == main.Path(main.__file__).resolve().parents[2]


def test_load_environment_exits_without_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda dotenv_path=None: False)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        main.load_environment()

    assert excinfo.value.code == 1


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda dotenv_path=None: True)
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")

    assert main.load_environment() == "abc"


def test_build_intents_enable_guilds_and_members():
    intents = main.build_intents()

    assert intents.guilds is True
    assert intents.members is True


def test_load_cogs_registers_roster_events_and_sweep():
    added = []
    bot = SimpleNamespace(add_cog=added.append)
    runtime = SimpleNamespace(config=SimpleNamespace())

    main.load_cogs(bot, runtime)  # type: ignore[arg-type]

    assert [type(cog).__name__ for cog in added] == ["RosterCog", "EventsListenerCog", "RosterSweepCog"]


@pytest.mark.asyncio
async def test_shutdown_runtime_removes_sweep_closes_bot_and_database():
    bot = MagicMock()
    bot.get_cog.return_value = object()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()
    database = SimpleNamespace(shutdown=AsyncMock())

    await main.shutdown_runtime(bot, database)  # type: ignore[arg-type]

    bot.remove_cog.assert_called_once_with("RosterSweepCog")
    bot.close.assert_awaited_once()
    database.shutdown.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_main_fails_when_database_cannot_open(monkeypatch):
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "AppConfig", lambda: SimpleNamespace(roster=main.RosterConfig()))
    database = SimpleNamespace(initialize=AsyncMock(return_value=False), shutdown=AsyncMock())
    monkeypatch.setattr(main, "Database", lambda table_name: database)
    create_bot = MagicMock()
    monkeypatch.setattr(main, "create_bot", create_bot)

    assert await main.async_main() == 1
    create_bot.assert_not_called()


@pytest.mark.asyncio
async def test_async_main_runs_bot_and_shuts_down(monkeypatch):
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "AppConfig", lambda: SimpleNamespace(roster=main.RosterConfig()))
    database = SimpleNamespace(initialize=AsyncMock(return_value=True), shutdown=AsyncMock())
    monkeypatch.setattr(main, "Database", lambda table_name: database)
    bot = SimpleNamespace(name="bot")
    monkeypatch.setattr(main, "create_bot", lambda config, db: (bot, SimpleNamespace()))
    start_bot = AsyncMock()
    shutdown = AsyncMock()
    monkeypatch.setattr(main, "start_bot", start_bot)
    monkeypatch.setattr(main, "shutdown_runtime", shutdown)

    assert await main.async_main() == 0

    start_bot.assert_awaited_once_with(bot, "token")
    shutdown.assert_awaited_once_with(bot, database)


def test_main_returns_exit_code_from_system_exit(monkeypatch):
    def fake_run(coro):
        coro.close()
        raise SystemExit(1)

    monkeypatch.setattr(main.asyncio, "run", fake_run)

    assert main.main() == 1

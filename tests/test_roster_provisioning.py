from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from rostercord.bot.roster_provisioning import CLOCKED_IN_ROLE_COLOUR, RosterProvisioner
from rostercord.configuration.roster_config import RosterConfig
from rostercord.datatypes.discord_datatypes import GuildID, RoleID
from rostercord.datatypes.roster_datatypes import ACTIVE_ROLE_KEY
from rostercord.roster.roster_handles import RosterHandleCache


BOT_ID = 999


class FakeRole:
    def __init__(self, role_id: int, name: str) -> None:
        self.id = role_id
        self.name = name


class FakeTextChannel:
    def __init__(self, channel_id: int, name: str, overwrites=None) -> None:
        self.id = channel_id
        self.name = name
        self.overwrites = overwrites or {}
        self.pinned: list = []
        self.sent: list = []

    async def pins(self):
        return list(self.pinned)

    async def send(self, content=None, view=None):
        message = SimpleNamespace(author=SimpleNamespace(id=BOT_ID), content=content, view=view, pin=AsyncMock(), edit=AsyncMock())
        self.sent.append(message)
        self.pinned.append(message)
        return message


class FakeGuild:
    def __init__(self) -> None:
        self.id = 1
        self.name = "Guild"
        self.default_role = FakeRole(1, "@everyone")
        self.me = FakeRole(BOT_ID, "Rostercord")
        self.roles: list[FakeRole] = [self.default_role]
        self.text_channels: list[FakeTextChannel] = []
        self._next_id = 100
        self.create_role = AsyncMock(side_effect=self._create_role)
        self.create_text_channel = AsyncMock(side_effect=self._create_text_channel)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    async def _create_role(self, name, **kwargs):
        role = FakeRole(self._new_id(), name)
        self.roles.append(role)
        return role

    async def _create_text_channel(self, name, **kwargs):
        channel = FakeTextChannel(self._new_id(), name, kwargs.get("overwrites"))
        self.text_channels.append(channel)
        return channel


@pytest.fixture
def config():
    return RosterConfig(preference_tags={"pvp": "PvP", "chill": "Chill"})


@pytest.fixture
def engine():
    fake = MagicMock()
    fake.refresh_summary = AsyncMock(return_value=True)
    return fake


@pytest.fixture
def handles():
    return RosterHandleCache()


@pytest.fixture
def provisioner(config, handles, engine):
    return RosterProvisioner(config, handles, engine, clock_station_view=SimpleNamespace(name="clock-view"))


@pytest.mark.asyncio
async def test_fresh_guild_gets_roles_channels_and_messages(provisioner, handles, engine):
    guild = FakeGuild()

    result = await provisioner.ensure_guild(guild)  # type: ignore[arg-type]

    role_names = [role.name for role in guild.roles]
    assert role_names == ["@everyone", "Clocked In", "PvP", "Chill"]
    first_role_call = guild.create_role.await_args_list[0]
    assert first_role_call.kwargs["colour"].value == CLOCKED_IN_ROLE_COLOUR

    assert [channel.name for channel in guild.text_channels] == ["clock-station", "party-finder"]
    clock_channel, party_finder = guild.text_channels
    active_role = guild.roles[1]
    assert party_finder.overwrites[guild.default_role].view_channel is False
    assert party_finder.overwrites[active_role].view_channel is True
    assert clock_channel.overwrites[guild.default_role].send_messages is False

    assert handles.get(1) is result
    assert result.role_id(ACTIVE_ROLE_KEY) == RoleID(active_role.id)
    assert set(result.role_ids) == {ACTIVE_ROLE_KEY, "pvp", "chill"}
    assert result.is_managed_channel(clock_channel.id)
    assert result.is_managed_channel(party_finder.id)

    assert len(clock_channel.sent) == 1
    assert "Clock Station" in clock_channel.sent[0].content
    assert clock_channel.sent[0].view.name == "clock-view"
    clock_channel.sent[0].pin.assert_awaited_once()
    engine.refresh_summary.assert_awaited_once_with(GuildID(1))


@pytest.mark.asyncio
async def test_second_run_reuses_everything(provisioner, handles):
    guild = FakeGuild()
    first = await provisioner.ensure_guild(guild)  # type: ignore[arg-type]
    guild.create_role.reset_mock()
    guild.create_text_channel.reset_mock()

    second = await provisioner.ensure_guild(guild)  # type: ignore[arg-type]

    guild.create_role.assert_not_awaited()
    guild.create_text_channel.assert_not_awaited()
    assert second.role_ids == first.role_ids
    assert second.clock_channel_id == first.clock_channel_id
    clock_channel = guild.text_channels[0]
    assert len(clock_channel.sent) == 1
    clock_channel.sent[0].edit.assert_awaited_once()
    assert len(handles) == 1


@pytest.mark.asyncio
async def test_existing_roles_are_not_recreated(provisioner):
    guild = FakeGuild()
    guild.roles.append(FakeRole(50, "Clocked In"))

    result = await provisioner.ensure_guild(guild)  # type: ignore[arg-type]

    assert result.role_id(ACTIVE_ROLE_KEY) == RoleID(50)
    created = [call.args[0] if call.args else call.kwargs["name"] for call in guild.create_role.await_args_list]
    assert created == ["PvP", "Chill"]

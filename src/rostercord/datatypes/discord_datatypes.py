"""
Type-safe wrappers for Discord snowflake identifiers.

Roster rows store user ids as TEXT and guild ids as INTEGER, while py-cord
hands out plain ints. Wrapping both in small value types keeps the engine,
repository and cogs from mixing a user id with a guild id or comparing a
string with an int.
"""

from __future__ import annotations

from typing import TypeVar, Union

import discord

SnowflakeT = TypeVar("SnowflakeT", bound="_Snowflake")


class _Snowflake:
    """
    Base class for snowflake wrappers.

    The value is kept as a canonical decimal string so that equality with
    both ``str`` and ``int`` works and hashing is stable.

    Example:
        >>> UserID(123) == "123"
        True
        >>> GuildID("  42 ").to_int()
        42
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "_Snowflake"]) -> None:
        if isinstance(value, _Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls: type[SnowflakeT], value: int) -> SnowflakeT:
        return cls(value)

    def to_int(self) -> int:
        """Return the id as an int for Discord API calls."""
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, _Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(_Snowflake):
    """Discord user (or member) id."""

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class GuildID(_Snowflake):
    """Discord guild id; every roster query is scoped by one."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class ChannelID(_Snowflake):
    """Discord channel id."""

    __slots__ = ()

    @classmethod
    def from_channel(cls, channel: discord.abc.GuildChannel) -> "ChannelID":
        return cls(channel.id)


class RoleID(_Snowflake):
    """Discord role id."""

    __slots__ = ()

    @classmethod
    def from_role(cls, role: discord.Role) -> "RoleID":
        return cls(role.id)

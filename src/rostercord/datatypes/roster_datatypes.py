"""
Data types shared by the roster engine, repository, renderer and cogs.

Contains the RosterEntry record, the outcome types returned by engine
operations, and the roster exception hierarchy.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rostercord.datatypes.discord_datatypes import GuildID, UserID

# Logical key of the active-marker role in the resolved-identifier cache.
# Preference roles are keyed by their tag.
ACTIVE_ROLE_KEY = "clocked_in"

# Preference "tag" that removes every preference role at once
CLEAR_PREFERENCES_TAG = "clear"


def utcnow() -> datetime.datetime:
    """Timezone-aware current UTC time."""
    return datetime.datetime.now(datetime.timezone.utc)


def to_unix(moment: datetime.datetime) -> int:
    """Convert an aware datetime to integer unix seconds."""
    return int(moment.timestamp())


def from_unix(seconds: int) -> datetime.datetime:
    """Convert integer unix seconds to an aware UTC datetime."""
    return datetime.datetime.fromtimestamp(int(seconds), tz=datetime.timezone.utc)


class RosterStatus(Enum):
    """Outcome of a roster operation."""

    SUCCESS = "success"
    ALREADY_ACTIVE = "already_active"
    NOT_ACTIVE = "not_active"
    UNKNOWN_TAG = "unknown_tag"
    ADDED = "added"
    REMOVED = "removed"
    CLEARED = "cleared"


@dataclass(frozen=True)
class RosterEntry:
    """
    One clock-in record.

    Attributes:
        user_id: Member who clocked in.
        guild_id: Guild the roster belongs to.
        display_name: Display name captured at clock-in; may go stale.
        clock_in_time: When the member clocked in (aware UTC).
        clock_out_time: Scheduled automatic clock-out (aware UTC).
        created_at: Bookkeeping timestamp; not used in queries.
        entry_id: Row id assigned by the store, None before insertion.
    """

    user_id: UserID
    guild_id: GuildID
    display_name: str
    clock_in_time: datetime.datetime
    clock_out_time: datetime.datetime
    created_at: datetime.datetime
    entry_id: Optional[int] = None

    @classmethod
    def start(
        cls,
        user_id: UserID,
        guild_id: GuildID,
        display_name: str,
        now: datetime.datetime,
        duration: datetime.timedelta,
    ) -> "RosterEntry":
        """Build a fresh entry that expires ``duration`` after ``now``."""
        return cls(
            user_id=UserID(user_id),
            guild_id=GuildID(guild_id),
            display_name=display_name,
            clock_in_time=now,
            clock_out_time=now + duration,
            created_at=now,
        )

    def is_active(self, now: datetime.datetime) -> bool:
        return self.clock_out_time > now

    def remaining(self, now: datetime.datetime) -> datetime.timedelta:
        """Time left before expiry, never negative."""
        return max(self.clock_out_time - now, datetime.timedelta(0))


@dataclass
class ClockInResult:
    status: RosterStatus
    entry: RosterEntry
    remaining: datetime.timedelta


@dataclass
class ClockOutResult:
    status: RosterStatus
    removed: int = 0


@dataclass
class ClearResult:
    """Outcome of an administrative roster clear."""

    removed_count: int = 0
    role_revocations: int = 0


@dataclass
class PreferenceResult:
    status: RosterStatus
    tag: str
    changed: int = 0


class RosterError(Exception):
    """Base class for roster errors."""


class RoleMissingError(RosterError):
    """A managed role is not resolved for the guild; a setup defect."""

    def __init__(self, guild_id: GuildID, role_key: str) -> None:
        super().__init__(f"Role '{role_key}' is not available in guild {guild_id}")
        self.guild_id = guild_id
        self.role_key = role_key


class ConfigurationError(RosterError):
    """The roster configuration is invalid."""

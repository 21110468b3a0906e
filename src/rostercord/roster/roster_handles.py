"""Resolved Discord identifiers for each guild's roster setup.

Provisioning looks channels and roles up by name once and records their ids
here. Handlers read ids from the cache instead of searching by display name
on every interaction; the cache changes only when provisioning runs again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from rostercord.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from rostercord.datatypes.roster_datatypes import RoleMissingError


@dataclass
class GuildRosterHandles:
    """Ids of one guild's managed channels and roles (keyed by logical role key)."""

    guild_id: GuildID
    clock_channel_id: ChannelID
    party_finder_channel_id: ChannelID
    role_ids: Dict[str, RoleID] = field(default_factory=dict)

    def role_id(self, role_key: str) -> RoleID:
        """
        Raises:
            RoleMissingError: If no role is recorded for ``role_key``.
        """
        try:
            return self.role_ids[role_key]
        except KeyError:
            raise RoleMissingError(self.guild_id, role_key) from None

    def is_managed_channel(self, channel_id: int) -> bool:
        return channel_id in (self.clock_channel_id, self.party_finder_channel_id)


class RosterHandleCache:
    """Guild id -> GuildRosterHandles."""

    def __init__(self) -> None:
        self._handles: Dict[GuildID, GuildRosterHandles] = {}

    def get(self, guild_id: GuildID | int) -> Optional[GuildRosterHandles]:
        return self._handles.get(GuildID(guild_id))

    def require(self, guild_id: GuildID | int, role_key: str) -> GuildRosterHandles:
        """Handles of the guild, checking that ``role_key`` is resolved.

        Raises:
            RoleMissingError: If the guild was never provisioned or lacks the role.
        """
        handles = self.get(guild_id)
        if handles is None:
            raise RoleMissingError(GuildID(guild_id), role_key)
        handles.role_id(role_key)
        return handles

    def store(self, handles: GuildRosterHandles) -> None:
        self._handles[handles.guild_id] = handles

    def forget(self, guild_id: GuildID | int) -> None:
        self._handles.pop(GuildID(guild_id), None)

    def __len__(self) -> int:
        return len(self._handles)

"""
Persistent storage for roster entries.

Timestamps are stored as INTEGER unix seconds, so "active" is the plain
comparison ``clock_out_time > now`` and "expired" is ``clock_out_time <= now``.
Results are returned in insertion order (row id); callers must not rely on
any other ordering.
"""

from __future__ import annotations

import datetime
from typing import Iterable, List, Optional

import aiosqlite

from rostercord.datatypes.discord_datatypes import GuildID, UserID
from rostercord.datatypes.roster_datatypes import RosterEntry, from_unix, to_unix
from rostercord.util.logger import get_logger

logger = get_logger("roster_repo")

_COLUMNS = "id, guild_id, user_id, display_name, clock_in_time, clock_out_time, created_at"


class RosterRepo:
    """Low-level CRUD for the roster table.

    Every method takes the connection explicitly so callers decide whether
    it runs inside a write transaction or a plain read.
    """

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name

    @staticmethod
    def _row_to_entry(row: Iterable) -> RosterEntry:
        entry_id, guild_id, user_id, display_name, clock_in, clock_out, created = tuple(row)
        return RosterEntry(
            user_id=UserID(str(user_id)),
            guild_id=GuildID(int(guild_id)),
            display_name=display_name,
            clock_in_time=from_unix(clock_in),
            clock_out_time=from_unix(clock_out),
            created_at=from_unix(created),
            entry_id=entry_id,
        )

    async def _select(self, conn: aiosqlite.Connection, where: str, params: tuple) -> List[RosterEntry]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM {self.table_name} WHERE {where} ORDER BY id",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def _delete(self, conn: aiosqlite.Connection, where: str, params: tuple) -> int:
        cursor = await conn.execute(f"DELETE FROM {self.table_name} WHERE {where}", params)
        return max(cursor.rowcount, 0)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, conn: aiosqlite.Connection, entry: RosterEntry) -> RosterEntry:
        """Insert one entry and return it with its assigned row id."""
        cursor = await conn.execute(
            f"""
            INSERT INTO {self.table_name}
                (guild_id, user_id, display_name, clock_in_time, clock_out_time, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                entry.guild_id.to_int(),
                str(entry.user_id),
                entry.display_name,
                to_unix(entry.clock_in_time),
                to_unix(entry.clock_out_time),
                to_unix(entry.created_at),
            ),
        )
        return RosterEntry(
            user_id=entry.user_id,
            guild_id=entry.guild_id,
            display_name=entry.display_name,
            clock_in_time=entry.clock_in_time,
            clock_out_time=entry.clock_out_time,
            created_at=entry.created_at,
            entry_id=cursor.lastrowid,
        )

    async def delete_active_for_user(
        self,
        conn: aiosqlite.Connection,
        guild_id: GuildID,
        user_id: UserID,
        now: datetime.datetime,
    ) -> int:
        """Delete every active entry of one member; returns the number removed."""
        return await self._delete(
            conn,
            "guild_id = ? AND user_id = ? AND clock_out_time > ?",
            (guild_id.to_int(), str(user_id), to_unix(now)),
        )

    async def delete_expired(self, conn: aiosqlite.Connection, guild_id: GuildID, now: datetime.datetime) -> int:
        """Bulk-delete entries with ``clock_out_time <= now``."""
        return await self._delete(
            conn,
            "guild_id = ? AND clock_out_time <= ?",
            (guild_id.to_int(), to_unix(now)),
        )

    async def delete_for_guild(self, conn: aiosqlite.Connection, guild_id: GuildID) -> int:
        return await self._delete(conn, "guild_id = ?", (guild_id.to_int(),))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_active(
        self,
        conn: aiosqlite.Connection,
        guild_id: GuildID,
        now: datetime.datetime,
        user_id: Optional[UserID] = None,
    ) -> List[RosterEntry]:
        """Active entries of the guild, or of one member when ``user_id`` is given."""
        if user_id is None:
            return await self._select(
                conn,
                "guild_id = ? AND clock_out_time > ?",
                (guild_id.to_int(), to_unix(now)),
            )
        return await self._select(
            conn,
            "guild_id = ? AND user_id = ? AND clock_out_time > ?",
            (guild_id.to_int(), str(user_id), to_unix(now)),
        )

    async def find_expired(self, conn: aiosqlite.Connection, guild_id: GuildID, now: datetime.datetime) -> List[RosterEntry]:
        return await self._select(
            conn,
            "guild_id = ? AND clock_out_time <= ?",
            (guild_id.to_int(), to_unix(now)),
        )

    async def find_for_guild(self, conn: aiosqlite.Connection, guild_id: GuildID) -> List[RosterEntry]:
        """Every entry of the guild, expired or not."""
        return await self._select(conn, "guild_id = ?", (guild_id.to_int(),))

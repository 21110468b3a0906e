"""
Roster state engine.

Decides clock-in / clock-out transitions, computes expiry, sweeps expired
entries and asks the platform to re-render the summary. The store mutation
is authoritative: role changes, DMs and re-renders that follow it are
best-effort, logged on failure and never rolled back or retried.

Concurrency
-----------
Handlers and the sweep run as independent asyncio tasks with no per-user
locking. Clock-in runs its "already active?" check and its insert inside
one serialised write transaction, so within this process two clock-ins for
the same member cannot both insert. A second process writing to the same
store can still race; clock-out's multi-row delete and the sweep's bulk
delete clean up any duplicate.
"""

from __future__ import annotations

import datetime
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from rostercord.configuration.roster_config import RosterConfig
from rostercord.database.db_connection import ConnectionManager
from rostercord.datatypes.discord_datatypes import GuildID, UserID
from rostercord.datatypes.roster_datatypes import (
    ACTIVE_ROLE_KEY,
    CLEAR_PREFERENCES_TAG,
    ClearResult,
    ClockInResult,
    ClockOutResult,
    PreferenceResult,
    RosterEntry,
    RosterStatus,
    utcnow,
)
from rostercord.repositories.roster_repo import RosterRepo
from rostercord.util.logger import get_logger

logger = get_logger("roster_engine")


class RosterPlatform(Protocol):
    """Chat-platform side effects used by the engine.

    Roles are addressed by logical key: ``ACTIVE_ROLE_KEY`` for the
    active-marker role, or a preference tag. Implementations raise
    ``RoleMissingError`` when a key cannot be resolved for the guild.
    """

    async def has_role(self, guild_id: GuildID, user_id: UserID, role_key: str) -> bool: ...

    async def grant_role(self, guild_id: GuildID, user_id: UserID, role_key: str) -> bool: ...

    async def revoke_role(self, guild_id: GuildID, user_id: UserID, role_key: str) -> bool: ...

    async def notify_user(self, guild_id: GuildID, user_id: UserID, text: str) -> None: ...

    async def publish_summary(self, guild_id: GuildID, entries: Sequence[RosterEntry], now: datetime.datetime) -> None: ...


class RosterEngine:
    """Roster transitions for every guild the bot serves.

    Args:
        config: Static roster settings.
        connection: Open connection manager for the roster store.
        platform: Side-effect collaborator (roles, DMs, summary message).
        repo: Repository override; defaults to one bound to the configured table.
    """

    def __init__(
        self,
        config: RosterConfig,
        connection: ConnectionManager,
        platform: RosterPlatform,
        repo: Optional[RosterRepo] = None,
    ) -> None:
        self.config = config
        self.connection = connection
        self.platform = platform
        self.repo = repo or RosterRepo(config.collection_name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _best_effort(self, description: str, action: Callable[[], Awaitable[object]]) -> object | None:
        """Run a side effect; log and return None if it fails."""
        try:
            return await action()
        except Exception as exc:
            logger.warning("[ROSTER ENGINE] %s failed: %s", description, exc)
            return None

    def auto_clock_out_message(self) -> str:
        return f"👋 You were automatically clocked out after {self.config.auto_clock_out_hours:g} hours."

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def active_entries(self, guild_id: GuildID, now: Optional[datetime.datetime] = None) -> List[RosterEntry]:
        now = now or utcnow()
        async with self.connection.read() as conn:
            return await self.repo.find_active(conn, GuildID(guild_id), now)

    async def refresh_summary(self, guild_id: GuildID, now: Optional[datetime.datetime] = None) -> bool:
        """Re-render the guild's summary message. Returns False if it failed."""
        now = now or utcnow()
        guild_id = GuildID(guild_id)
        try:
            entries = await self.active_entries(guild_id, now)
            await self.platform.publish_summary(guild_id, entries, now)
        except Exception as exc:
            logger.warning("[ROSTER ENGINE] Summary refresh failed for guild %s: %s", guild_id, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def clock_in(
        self,
        user_id: UserID,
        guild_id: GuildID,
        display_name: str,
        now: Optional[datetime.datetime] = None,
    ) -> ClockInResult:
        """Add a member to the active roster unless they are already on it."""
        now = now or utcnow()
        user_id, guild_id = UserID(user_id), GuildID(guild_id)

        async with self.connection.transaction() as conn:
            existing = await self.repo.find_active(conn, guild_id, now, user_id=user_id)
            if existing:
                current = existing[0]
                return ClockInResult(RosterStatus.ALREADY_ACTIVE, current, current.remaining(now))

            entry = await self.repo.insert(
                conn,
                RosterEntry.start(user_id, guild_id, display_name, now, self.config.clock_out_after),
            )

        logger.info(
            "[ROSTER ENGINE] %s (%s) clocked in to guild %s until %s",
            display_name, user_id, guild_id, entry.clock_out_time.isoformat(),
        )

        await self._best_effort(
            f"Granting active role to {user_id}",
            lambda: self.platform.grant_role(guild_id, user_id, ACTIVE_ROLE_KEY),
        )
        await self.refresh_summary(guild_id, now)
        return ClockInResult(RosterStatus.SUCCESS, entry, entry.remaining(now))

    async def clock_out(
        self,
        user_id: UserID,
        guild_id: GuildID,
        now: Optional[datetime.datetime] = None,
    ) -> ClockOutResult:
        """Remove every active entry of the member."""
        now = now or utcnow()
        user_id, guild_id = UserID(user_id), GuildID(guild_id)

        async with self.connection.transaction() as conn:
            removed = await self.repo.delete_active_for_user(conn, guild_id, user_id, now)

        if removed == 0:
            return ClockOutResult(RosterStatus.NOT_ACTIVE)
        if removed > 1:
            logger.warning("[ROSTER ENGINE] Removed %d active entries for %s in guild %s", removed, user_id, guild_id)

        logger.info("[ROSTER ENGINE] %s clocked out of guild %s", user_id, guild_id)

        await self._best_effort(
            f"Revoking active role from {user_id}",
            lambda: self.platform.revoke_role(guild_id, user_id, ACTIVE_ROLE_KEY),
        )
        await self.refresh_summary(guild_id, now)
        return ClockOutResult(RosterStatus.SUCCESS, removed)

    async def clear_all(self, guild_id: GuildID, now: Optional[datetime.datetime] = None) -> ClearResult:
        """Administrative clear: delete every entry of the guild and revoke roles."""
        now = now or utcnow()
        guild_id = GuildID(guild_id)

        async with self.connection.transaction() as conn:
            snapshot = await self.repo.find_for_guild(conn, guild_id)
            if not snapshot:
                return ClearResult()
            removed = await self.repo.delete_for_guild(conn, guild_id)

        revocations = 0
        for user_id in dict.fromkeys(entry.user_id for entry in snapshot):
            revoked = await self._best_effort(
                f"Revoking active role from {user_id}",
                lambda uid=user_id: self.platform.revoke_role(guild_id, uid, ACTIVE_ROLE_KEY),
            )
            if revoked:
                revocations += 1

        logger.info(
            "[ROSTER ENGINE] Cleared roster of guild %s: %d entries, %d roles revoked",
            guild_id, removed, revocations,
        )
        await self.refresh_summary(guild_id, now)
        return ClearResult(removed_count=removed, role_revocations=revocations)

    async def reconcile_expired(self, guild_id: GuildID, now: Optional[datetime.datetime] = None) -> List[RosterEntry]:
        """Delete expired entries and clean up after them.

        Members who clocked in again before the sweep keep their role and
        get no notification. Returns the deleted entries; the summary is
        re-rendered only when that list is non-empty.
        """
        now = now or utcnow()
        guild_id = GuildID(guild_id)

        async with self.connection.transaction() as conn:
            expired = await self.repo.find_expired(conn, guild_id, now)
            if not expired:
                return []
            await self.repo.delete_expired(conn, guild_id, now)
            still_active = {entry.user_id for entry in await self.repo.find_active(conn, guild_id, now)}

        logger.info("[ROSTER ENGINE] Expired %d roster entries in guild %s", len(expired), guild_id)

        message = self.auto_clock_out_message()
        for user_id in dict.fromkeys(entry.user_id for entry in expired):
            if user_id in still_active:
                continue
            await self._best_effort(
                f"Revoking active role from expired {user_id}",
                lambda uid=user_id: self.platform.revoke_role(guild_id, uid, ACTIVE_ROLE_KEY),
            )
            await self._best_effort(
                f"Notifying {user_id} of auto clock-out",
                lambda uid=user_id: self.platform.notify_user(guild_id, uid, message),
            )

        await self.refresh_summary(guild_id, now)
        return expired

    async def toggle_preference(
        self,
        user_id: UserID,
        guild_id: GuildID,
        tag: str,
        now: Optional[datetime.datetime] = None,
    ) -> PreferenceResult:
        """Toggle one preference role, or clear them all with ``CLEAR_PREFERENCES_TAG``.

        Raises:
            RoleMissingError: If the active or a preference role is not set up.
        """
        user_id, guild_id = UserID(user_id), GuildID(guild_id)
        tag = tag.strip().lower()

        if not await self.platform.has_role(guild_id, user_id, ACTIVE_ROLE_KEY):
            return PreferenceResult(RosterStatus.NOT_ACTIVE, tag)

        if tag == CLEAR_PREFERENCES_TAG:
            revoked = 0
            try:
                for preference in self.config.preference_tags:
                    if await self.platform.has_role(guild_id, user_id, preference):
                        await self.platform.revoke_role(guild_id, user_id, preference)
                        revoked += 1
            finally:
                # roles already removed must show up even if a later revoke fails
                if revoked:
                    await self.refresh_summary(guild_id, now)
            return PreferenceResult(RosterStatus.CLEARED, tag, revoked)

        if tag not in self.config.preference_tags:
            return PreferenceResult(RosterStatus.UNKNOWN_TAG, tag)

        if await self.platform.has_role(guild_id, user_id, tag):
            await self.platform.revoke_role(guild_id, user_id, tag)
            status = RosterStatus.REMOVED
        else:
            await self.platform.grant_role(guild_id, user_id, tag)
            status = RosterStatus.ADDED

        logger.debug("[ROSTER ENGINE] Preference %s %s for %s in guild %s", tag, status.value, user_id, guild_id)
        await self.refresh_summary(guild_id, now)
        return PreferenceResult(status, tag, 1)

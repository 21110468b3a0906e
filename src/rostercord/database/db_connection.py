"""
Database connection management: one long-lived aiosqlite connection.

SQLite is single-writer. Writes go through ``transaction()``, which holds a
write semaphore for the whole block so async tasks queue instead of racing
each other. This is what serialises the roster's check-then-insert on
clock-in. Reads in WAL mode run concurrently and need no semaphore.

Usage
-----
    manager = ConnectionManager()
    await manager.open(DB_PATH)

    async with manager.read() as conn:
        cursor = await conn.execute("SELECT ...")

    async with manager.transaction() as conn:
        await conn.execute("DELETE ...")
        # commits on clean exit, rolls back on exception

    await manager.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from rostercord.util.logger import get_logger

logger = get_logger("database_connection")

DB_PATH = Path("./data/rostercord.db").resolve()

_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",    # safe with WAL
    "PRAGMA temp_store = MEMORY",
    "PRAGMA busy_timeout = 5000",
]


class ConnectionManager:
    """
    Wrapper around a single aiosqlite connection.

    * Reads  - ``async with read()`` or ``connection``.
    * Writes - ``async with transaction()``; serialised by ``_write_sem``.
    """

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)
        self._path: Path | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self, path: Path = DB_PATH) -> None:
        """
        Open the database and apply pragmas.

        Args:
            path: Path to the SQLite database file.
        """
        if self.is_open:
            logger.warning("[DB CONNECTION] open() called but connection already exists; ignoring")
            return

        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(path)
        self._conn.row_factory = aiosqlite.Row

        for pragma in _PRAGMAS:
            await self._conn.execute(pragma)
        await self._conn.commit()

        logger.info("[DB CONNECTION] Opened connection to %s", path)

    async def close(self) -> None:
        """Flush the WAL and close the connection."""
        if not self.is_open:
            return

        try:
            await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await self._conn.commit()
        except Exception:
            logger.exception("[DB CONNECTION] WAL checkpoint failed during close")
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[DB CONNECTION] Connection closed")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # Connection access
    # ------------------------------------------------------------------

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The raw connection for read operations.

        Raises:
            RuntimeError: If the connection has not been opened yet.
        """
        if self._conn is None:
            raise RuntimeError(
                "ConnectionManager: connection is not open. "
                "Call await manager.open(path) at startup."
            )
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Serialised write transaction.

        Commits on clean exit and rolls back if the block raises.

        Raises:
            RuntimeError: If the connection is not open.
        """
        conn = self.connection

        async with self._write_sem:
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Read context, symmetrical with ``transaction()``; takes no lock."""
        yield self.connection

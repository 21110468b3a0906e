"""
Database coordinator for the roster store.

Owns the ConnectionManager and runs schema creation for the configured
roster table. One instance is created at startup and passed to the roster
engine; nothing here is module-global.
"""

from __future__ import annotations

from pathlib import Path

from rostercord.database.db_connection import DB_PATH, ConnectionManager
from rostercord.database.db_schema import SchemaManager
from rostercord.util.logger import get_logger

logger = get_logger("database")


class Database:
    """
    Lifecycle:
        1. ``await initialize()`` at program startup
        2. hand ``connection`` to repositories and the roster engine
        3. ``await shutdown()`` at program end
    """

    def __init__(self, table_name: str, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path
        self.table_name = table_name
        self.connection = ConnectionManager()
        self._initialized = False

    async def initialize(self) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self.connection.open(self.db_path)
            await SchemaManager.initialize_schema(self.connection.connection, self.table_name)
        except Exception as exc:
            logger.error("[DATABASE] Database initialization failed: %s", exc)
            await self.connection.close()
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        """Close the connection. Safe to call more than once."""
        if not self._initialized:
            return

        await self.connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")

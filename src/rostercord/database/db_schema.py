"""
Database schema initialization.

Creates the roster table (named after the configured collection), its
lookup indexes and the schema version table.
"""

import aiosqlite

from rostercord.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates and versions the roster schema.

    ``table_name`` must already be validated as a plain identifier
    (RosterConfig does this), since it is interpolated into DDL.
    """

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection, table_name: str) -> None:
        """
        Create the roster table, indexes and schema version row.

        Args:
            db: Open database connection
            table_name: Name of the roster table
        """
        await SchemaManager._create_tables(db, table_name)
        await SchemaManager._create_indexes(db, table_name)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Roster schema initialized (table=%s)", table_name)

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection, table_name: str) -> None:
        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                user_id TEXT NOT NULL,
                display_name TEXT NOT NULL DEFAULT '',
                clock_in_time INTEGER NOT NULL,
                clock_out_time INTEGER NOT NULL,
                created_at INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection, table_name: str) -> None:
        # Per-user active lookups (clock-in check, clock-out delete)
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{table_name}_member "
            f"ON {table_name}(guild_id, user_id, clock_out_time)"
        )
        # Per-guild range scans (rendering, sweep)
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{table_name}_expiry "
            f"ON {table_name}(guild_id, clock_out_time)"
        )

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))

"""
Database layer using aiosqlite for Whale Tracker Bot.
Stores subscribed users and their filter rows.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

import aiosqlite

from core.models import FilterRecord, FilterType, SINGLETON_FILTER_TYPES, User

logger = logging.getLogger(__name__)

FilterTypeLike = Union[FilterType, str]


def _type_value(filter_type: FilterTypeLike) -> str:
    return filter_type.value if isinstance(filter_type, FilterType) else str(filter_type)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """Async database manager using SQLite."""

    def __init__(self, db_path: str):
        """Initialize database with path."""
        self.db_path = db_path
        self.conn: Optional[aiosqlite.Connection] = None

    async def connect(self):
        """Connect to the database and create tables if needed."""
        self.conn = await aiosqlite.connect(self.db_path)
        self.conn.row_factory = aiosqlite.Row
        await self._create_tables()
        logger.info(f"Database connected: {self.db_path}")

    async def close(self):
        """Close database connection."""
        if self.conn:
            await self.conn.close()
            self.conn = None
            logger.info("Database connection closed")

    async def _create_tables(self):
        """Create database tables if they don't exist."""
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                telegram_id INTEGER PRIMARY KEY,
                username TEXT,
                created_at TEXT NOT NULL
            )
        """)

        # Rows are read back ordered by id; singleton types rely on it
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS filters (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                filter_type TEXT NOT NULL,
                filter_value TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(telegram_id)
            )
        """)

        await self.conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_filters_user_type ON filters(user_id, filter_type)
        """)

        await self.conn.commit()

    # User operations

    async def create_user(self, telegram_id: int, username: Optional[str] = None) -> bool:
        """Create a new user or update the username of an existing one."""
        try:
            await self.conn.execute("""
                INSERT INTO users (telegram_id, username, created_at)
                VALUES (?, ?, ?)
                ON CONFLICT(telegram_id) DO UPDATE SET username=excluded.username
            """, (telegram_id, username, _now()))
            await self.conn.commit()
            return True
        except Exception as e:
            logger.error(f"Error creating user {telegram_id}: {e}")
            return False

    async def get_all_users(self) -> List[User]:
        """Get every registered user, oldest first."""
        cursor = await self.conn.execute("""
            SELECT telegram_id, username, created_at FROM users ORDER BY created_at, telegram_id
        """)
        rows = await cursor.fetchall()
        return [
            User(telegram_id=row['telegram_id'], username=row['username'], created_at=row['created_at'])
            for row in rows
        ]

    # Filter operations

    async def get_user_filters(self, user_id: int) -> List[FilterRecord]:
        """Get all filter rows for a user in insertion order."""
        cursor = await self.conn.execute("""
            SELECT id, user_id, filter_type, filter_value, created_at
            FROM filters WHERE user_id = ? ORDER BY id
        """, (user_id,))
        rows = await cursor.fetchall()
        return [
            FilterRecord(
                id=row['id'],
                user_id=row['user_id'],
                filter_type=row['filter_type'],
                filter_value=row['filter_value'],
                created_at=row['created_at'],
            )
            for row in rows
        ]

    async def add_filter(self, user_id: int, filter_type: FilterTypeLike, filter_value: str) -> bool:
        """Append a filter row."""
        try:
            await self.conn.execute("""
                INSERT INTO filters (user_id, filter_type, filter_value, created_at)
                VALUES (?, ?, ?, ?)
            """, (user_id, _type_value(filter_type), filter_value, _now()))
            await self.conn.commit()
            return True
        except Exception as e:
            logger.error(f"Error adding {_type_value(filter_type)} filter for {user_id}: {e}")
            return False

    async def remove_filter(self, user_id: int, filter_type: FilterTypeLike, filter_value: str) -> bool:
        """
        Remove filter rows matching type and value.

        Returns:
            True if at least one row was deleted
        """
        try:
            cursor = await self.conn.execute("""
                DELETE FROM filters WHERE user_id = ? AND filter_type = ? AND filter_value = ?
            """, (user_id, _type_value(filter_type), filter_value))
            await self.conn.commit()
            return cursor.rowcount > 0
        except Exception as e:
            logger.error(f"Error removing {_type_value(filter_type)} filter for {user_id}: {e}")
            return False

    async def clear_filters(self, user_id: int, filter_type: Optional[FilterTypeLike] = None) -> bool:
        """Remove all of a user's filters, or only those of one type."""
        try:
            if filter_type is None:
                await self.conn.execute("DELETE FROM filters WHERE user_id = ?", (user_id,))
            else:
                await self.conn.execute("""
                    DELETE FROM filters WHERE user_id = ? AND filter_type = ?
                """, (user_id, _type_value(filter_type)))
            await self.conn.commit()
            return True
        except Exception as e:
            logger.error(f"Error clearing filters for {user_id}: {e}")
            return False

    async def set_filter_value(self, user_id: int, filter_type: FilterTypeLike, filter_value: str) -> bool:
        """Replace every row of a singleton filter type with one value (single transaction)."""
        type_value = _type_value(filter_type)
        if type_value not in SINGLETON_FILTER_TYPES:
            # Replacing a list type would wipe every entry but one
            logger.error(f"Refusing to set list filter {type_value} for {user_id}")
            return False

        try:
            await self.conn.execute("""
                DELETE FROM filters WHERE user_id = ? AND filter_type = ?
            """, (user_id, type_value))
            await self.conn.execute("""
                INSERT INTO filters (user_id, filter_type, filter_value, created_at)
                VALUES (?, ?, ?, ?)
            """, (user_id, type_value, filter_value, _now()))
            await self.conn.commit()
            return True
        except Exception as e:
            await self.conn.rollback()
            logger.error(f"Error setting {type_value} for {user_id}: {e}")
            return False

    async def count_filters(self, user_id: int, filter_type: FilterTypeLike) -> int:
        cursor = await self.conn.execute("""
            SELECT COUNT(*) FROM filters WHERE user_id = ? AND filter_type = ?
        """, (user_id, _type_value(filter_type)))
        row = await cursor.fetchone()
        return row[0] if row else 0

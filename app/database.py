"""Database connection management."""

import logging

import asyncpg
from asyncpg import Pool

from app.config import get_settings
from core.lifecycle.postgres_repository import PostgresContractRepository

logger = logging.getLogger("creatorlens.database")


class Database:
    """Database connection manager using asyncpg."""

    def __init__(self) -> None:
        self._pool: Pool | None = None

    async def connect(self) -> None:
        """Create database connection pool and ensure the contract tables exist."""
        settings = get_settings()
        self._pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=2,
            max_size=10,
        )
        logger.info("Database connection pool created")

        await PostgresContractRepository(self._pool).ensure_tables()
        logger.info("Contract tables ready")

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection pool closed")

    @property
    def pool(self) -> Pool:
        """Get the connection pool."""
        if not self._pool:
            raise RuntimeError("Database not connected")
        return self._pool

    def repository(self) -> PostgresContractRepository:
        """Repository bound to the open pool."""
        return PostgresContractRepository(self.pool)


# Global database instance
db = Database()

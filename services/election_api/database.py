"""PostgreSQL document store for elections."""
import asyncio
import json
import logging
from typing import Any, Dict, Optional

import asyncpg

from ..shared.store import (
    COLLECTION_DDL,
    DataAccessLayer,
    DocumentNotFoundError,
    StoreError,
    quote_collection,
)
from .config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class Database(DataAccessLayer):
    """Async PostgreSQL document store backed by an asyncpg pool."""

    def __init__(self, settings: Settings = None):
        self.settings = settings or default_settings
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """Initialize connection pool and make sure collections exist."""
        try:
            self.pool = await asyncpg.create_pool(
                self.settings.postgres_dsn,
                min_size=self.settings.POSTGRES_POOL_MIN_SIZE,
                max_size=self.settings.POSTGRES_POOL_MAX_SIZE,
                command_timeout=self.settings.STORE_TIMEOUT,
                timeout=self.settings.STORE_TIMEOUT
            )
            logger.info("PostgreSQL connection pool initialized successfully")

            async with self._acquire() as conn:
                await conn.fetchval("SELECT 1")
                logger.info("PostgreSQL connection verified")

            await self.ensure_collection(self.settings.ELECTION_COLLECTION)
            await self.ensure_collection(self.settings.VOTE_COLLECTION)

        except Exception as e:
            logger.error(f"Failed to initialize PostgreSQL connection pool: {e}")
            raise

    def _acquire(self):
        if self.pool is None:
            raise StoreError("Database is not initialized")
        return self.pool.acquire(timeout=self.settings.STORE_TIMEOUT)

    async def ensure_collection(self, collection: str):
        """Create the collection table if it does not exist."""
        async with self._acquire() as conn:
            await conn.execute(COLLECTION_DDL.format(table=quote_collection(collection)))
        logger.info(f"Collection ready: {collection}")

    async def upsert(self, collection: str, key: int, document: Dict[str, Any]) -> None:
        query = f"""
            INSERT INTO {quote_collection(collection)} (doc_id, document, updated_at)
            VALUES ($1, $2::jsonb, NOW())
            ON CONFLICT (doc_id) DO UPDATE SET
                document = EXCLUDED.document,
                updated_at = NOW()
        """
        try:
            async with self._acquire() as conn:
                await conn.execute(query, key, json.dumps(document))
        except Exception as e:
            logger.error(f"Error upserting id {key} into {collection}: {e}")
            raise

    async def find_one(self, collection: str, key: int) -> Dict[str, Any]:
        query = f"SELECT document FROM {quote_collection(collection)} WHERE doc_id = $1"
        try:
            async with self._acquire() as conn:
                raw = await conn.fetchval(query, key)
        except Exception as e:
            logger.error(f"Error finding id {key} in {collection}: {e}")
            raise

        if raw is None:
            raise DocumentNotFoundError(collection, key)
        return json.loads(raw)

    async def remove(self, collection: str, key: int) -> None:
        query = f"DELETE FROM {quote_collection(collection)} WHERE doc_id = $1"
        try:
            async with self._acquire() as conn:
                result = await conn.execute(query, key)
                logger.debug(f"Remove id {key} from {collection}: {result}")
        except Exception as e:
            logger.error(f"Error removing id {key} from {collection}: {e}")
            raise

    async def insert(self, collection: str, document: Dict[str, Any]) -> None:
        query = f"INSERT INTO {quote_collection(collection)} (document) VALUES ($1::jsonb)"
        try:
            async with self._acquire() as conn:
                await conn.execute(query, json.dumps(document))
        except Exception as e:
            logger.error(f"Error inserting into {collection}: {e}")
            raise

    async def check_health(self) -> bool:
        """
        Check PostgreSQL connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        try:
            if not self.pool:
                return False
            async with self._acquire() as conn:
                await asyncio.wait_for(conn.fetchval("SELECT 1"), self.settings.STORE_TIMEOUT)
                return True
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool."""
        try:
            if self.pool:
                await self.pool.close()
                logger.info("PostgreSQL connection pool closed successfully")
        except Exception as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")

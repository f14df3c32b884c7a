"""PostgreSQL database client for vote processor."""

import psycopg2
import psycopg2.pool
import psycopg2.extras
import logging
from contextlib import contextmanager
from typing import Dict, Any
from psycopg2 import sql

from ..shared.store import COLLECTION_DDL, validate_collection_name
from .config import Config

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Custom exception for database errors."""
    pass


class DatabaseClient:
    """PostgreSQL client appending vote documents."""

    def __init__(self):
        """Initialize PostgreSQL connection pool."""
        try:
            self.pool = psycopg2.pool.ThreadedConnectionPool(
                Config.POSTGRES_MIN_POOL_SIZE,
                Config.POSTGRES_MAX_POOL_SIZE,
                Config.get_postgres_dsn(),
                connect_timeout=max(1, int(Config.STORE_TIMEOUT)),
                options=f"-c statement_timeout={int(Config.STORE_TIMEOUT * 1000)}"
            )
            logger.info("PostgreSQL connection pool created successfully")
            self._test_connection()
            self.ensure_collection(Config.VOTE_COLLECTION)
        except psycopg2.Error as e:
            logger.error(f"Failed to create PostgreSQL connection pool: {e}")
            raise DatabaseError(f"Connection pool creation failed: {e}")

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.

        Yields:
            Connection object from the pool.
        """
        connection = None
        try:
            connection = self.pool.getconn()
            yield connection
        finally:
            if connection:
                self.pool.putconn(connection)

    def _test_connection(self):
        """Test database connection on initialization."""
        with self.get_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
            logger.info("PostgreSQL connection test successful")

    def ensure_collection(self, collection: str):
        """Create the collection table if it does not exist."""
        statement = sql.SQL(COLLECTION_DDL).format(
            table=sql.Identifier(validate_collection_name(collection))
        )
        with self.get_connection() as conn:
            try:
                with conn.cursor() as cursor:
                    cursor.execute(statement)
                conn.commit()
            except psycopg2.Error:
                conn.rollback()
                raise
        logger.info(f"Collection ready: {collection}")

    def insert(self, collection: str, document: Dict[str, Any]) -> int:
        """
        Append a document to a collection.

        Args:
            collection: Collection name
            document: JSON-serializable document

        Returns:
            The inserted row id

        Raises:
            DatabaseError: If the insert fails
        """
        query = sql.SQL(
            "INSERT INTO {table} (document) VALUES (%s) RETURNING pk"
        ).format(table=sql.Identifier(validate_collection_name(collection)))

        try:
            with self.get_connection() as conn:
                try:
                    with conn.cursor() as cursor:
                        cursor.execute(query, (psycopg2.extras.Json(document),))
                        row_id = cursor.fetchone()[0]
                    conn.commit()
                except psycopg2.Error:
                    conn.rollback()
                    raise

            logger.debug(f"Inserted document {row_id} into {collection}")
            return row_id

        except psycopg2.Error as e:
            logger.error(f"Database error inserting into {collection}: {e}")
            raise DatabaseError(str(e))

    def close(self):
        """Close all database connections."""
        try:
            self.pool.closeall()
            logger.info("PostgreSQL connection pool closed")
        except Exception as e:
            logger.error(f"Error closing database connections: {e}")

"""Document store contract shared by the election API and the vote processor."""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict


# Each collection is a PostgreSQL table of JSONB documents. Keyed documents
# carry doc_id; appended documents leave it NULL.
COLLECTION_DDL = """
    CREATE TABLE IF NOT EXISTS {table} (
        pk BIGSERIAL PRIMARY KEY,
        doc_id INTEGER UNIQUE,
        document JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]{0,62}$')


class StoreError(Exception):
    """Base exception for document store failures."""
    pass


class DocumentNotFoundError(StoreError):
    """Raised when no document matches the requested key."""

    def __init__(self, collection: str, key: int):
        super().__init__(f"no document with id {key} in {collection}")
        self.collection = collection
        self.key = key


def validate_collection_name(name: str) -> str:
    """
    Check that a collection name can be used as a table identifier.

    Raises:
        ValueError: If the name is not a plain SQL identifier
    """
    if not _IDENTIFIER.match(name or ''):
        raise ValueError(f"Invalid collection name: {name!r}")
    return name


def quote_collection(name: str) -> str:
    """Return the collection name as a quoted SQL identifier."""
    return f'"{validate_collection_name(name)}"'


class DataAccessLayer(ABC):
    """Async capability interface over the document store."""

    @abstractmethod
    async def upsert(self, collection: str, key: int, document: Dict[str, Any]) -> None:
        """Insert the document or replace the one stored under key."""

    @abstractmethod
    async def find_one(self, collection: str, key: int) -> Dict[str, Any]:
        """
        Fetch the document stored under key.

        Raises:
            DocumentNotFoundError: If nothing is stored under key
        """

    @abstractmethod
    async def remove(self, collection: str, key: int) -> None:
        """Delete the document stored under key, if any."""

    @abstractmethod
    async def insert(self, collection: str, document: Dict[str, Any]) -> None:
        """Append a document without a key."""

    async def check_health(self) -> bool:
        return True

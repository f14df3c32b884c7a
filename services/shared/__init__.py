"""
Shared utilities and models for the election voting services.

This package contains common code used across all services:
- Data models (Timestamp, Election, Vote)
- Election window and candidate checks
- Document store contract and errors
- HTTP error and health response models
"""

from .models import (
    Timestamp,
    Election,
    Vote,
    is_election_over,
    contains_candidate,
    parse_int32,
    INT32_MIN,
    INT32_MAX,
)
from .store import (
    DataAccessLayer,
    StoreError,
    DocumentNotFoundError,
    COLLECTION_DDL,
    validate_collection_name,
    quote_collection,
)

__all__ = [
    'Timestamp',
    'Election',
    'Vote',
    'is_election_over',
    'contains_candidate',
    'parse_int32',
    'INT32_MIN',
    'INT32_MAX',
    'DataAccessLayer',
    'StoreError',
    'DocumentNotFoundError',
    'COLLECTION_DDL',
    'validate_collection_name',
    'quote_collection',
]

__version__ = '1.0.0'

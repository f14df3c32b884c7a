"""
Shared data models and utilities for the election voting services.

This module contains:
- Timestamp: seconds/nanos pair exchanged as JSON by every service
- Election: ballot document owned by the election service
- Vote: message published by the vote API and consumed by the vote processor
- Election window and candidate checks
"""

import json
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List


INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1

# 0001-01-01T00:00:00Z and 9999-12-31T23:59:59Z
MIN_VALID_SECONDS = -62135596800
MAX_VALID_SECONDS = 253402300799
MAX_VALID_NANOS = 999999999

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_INT_PATTERN = re.compile(r'[+-]?[0-9]+')


def _require_int(value: Any, name: str) -> int:
    # bool is an int subclass and must not pass as one
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    return value


@dataclass
class Timestamp:
    """
    Point in time as whole seconds since the Unix epoch plus nanoseconds.

    Attributes:
        seconds: Seconds since 1970-01-01T00:00:00Z
        nanos: Non-negative fraction of a second in nanoseconds
    """
    seconds: int = 0
    nanos: int = 0

    def is_valid(self) -> bool:
        """Check that the timestamp lies in the representable range."""
        return (
            MIN_VALID_SECONDS <= self.seconds <= MAX_VALID_SECONDS
            and 0 <= self.nanos <= MAX_VALID_NANOS
        )

    def to_datetime(self) -> datetime:
        """
        Convert to an aware UTC datetime.

        Raises:
            ValueError: If the timestamp is outside the valid range
        """
        if not self.is_valid():
            raise ValueError(
                f"timestamp out of range: seconds={self.seconds}, nanos={self.nanos}"
            )
        return EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanos // 1000)

    def to_dict(self) -> Dict[str, int]:
        return {"seconds": self.seconds, "nanos": self.nanos}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Timestamp':
        """Create Timestamp from dictionary, missing fields default to zero."""
        if not isinstance(data, dict):
            raise ValueError("timestamp must be an object")
        return cls(
            seconds=_require_int(data.get("seconds", 0), "seconds"),
            nanos=_require_int(data.get("nanos", 0), "nanos"),
        )

    @classmethod
    def from_datetime(cls, value: datetime) -> 'Timestamp':
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - EPOCH
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds=seconds, nanos=delta.microseconds * 1000)

    @classmethod
    def now(cls) -> 'Timestamp':
        """Current wall-clock time."""
        now_ns = time.time_ns()
        return cls(seconds=now_ns // 1_000_000_000, nanos=now_ns % 1_000_000_000)


@dataclass
class Election:
    """
    Election document as stored in the election collection.

    Attributes:
        id: Caller-assigned positive identifier
        candidates: Ordered names eligible to receive votes
        start: Set by the election service on every upsert
        end: Close of voting
    """
    id: int
    candidates: List[str] = field(default_factory=list)
    start: Optional[Timestamp] = None
    end: Optional[Timestamp] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "start": self.start.to_dict() if self.start else None,
            "end": self.end.to_dict() if self.end else None,
            "candidates": list(self.candidates),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Election':
        """Create Election from a stored document."""
        start = data.get("start")
        end = data.get("end")
        return cls(
            id=_require_int(data.get("id"), "id"),
            candidates=list(data.get("candidates") or []),
            start=Timestamp.from_dict(start) if start is not None else None,
            end=Timestamp.from_dict(end) if end is not None else None,
        )

    def is_over(self, now: Optional[datetime] = None) -> bool:
        return is_election_over(self.end, now)

    def has_candidate(self, candidate: str) -> bool:
        return contains_candidate(candidate, self.candidates)


@dataclass
class Vote:
    """
    Vote message passed through the message bus.

    Attributes:
        election_id: Identifier of the election being voted on
        candidate: Name of the chosen candidate
    """
    election_id: int
    candidate: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire/document shape."""
        return {"electionId": self.election_id, "candidate": self.candidate}

    def to_json(self) -> str:
        """Convert to JSON string for the message bus."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vote':
        """
        Create Vote from dictionary.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("vote must be an object")
        candidate = data.get("candidate")
        if not isinstance(candidate, str):
            raise ValueError("candidate must be a string")
        return cls(
            election_id=_require_int(data.get("electionId"), "electionId"),
            candidate=candidate,
        )

    @classmethod
    def from_json(cls, payload) -> 'Vote':
        """Create Vote from a JSON string or bytes."""
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode('utf-8')
        return cls.from_dict(json.loads(payload))

    def validate(self) -> tuple[bool, Optional[str]]:
        """
        Validate vote message data.

        Returns:
            tuple: (is_valid, error_message)
        """
        if not INT32_MIN <= self.election_id <= INT32_MAX:
            return False, "electionId must be a 32-bit integer"

        if self.election_id <= 0:
            return False, "electionId must be positive"

        if not self.candidate or not self.candidate.strip():
            return False, "candidate is required"

        return True, None


def is_election_over(end: Optional[Timestamp], now: Optional[datetime] = None) -> bool:
    """
    Decide whether voting has closed.

    A missing or out-of-range end time counts as closed.

    Args:
        end: Election end timestamp
        now: Reference time, defaults to the current UTC time

    Returns:
        bool: True if now is at or after the end
    """
    if end is None:
        return True
    try:
        end_dt = end.to_datetime()
    except ValueError:
        return True
    if now is None:
        now = datetime.now(timezone.utc)
    return now >= end_dt


def contains_candidate(candidate: str, candidates: List[str]) -> bool:
    """Exact, case-sensitive membership test."""
    return candidate in candidates


def parse_int32(value: str) -> int:
    """
    Parse a decimal 32-bit signed integer.

    Raises:
        ValueError: If the value is not a decimal integer or overflows int32
    """
    if not _INT_PATTERN.fullmatch(value or ''):
        raise ValueError(f"invalid integer: {value!r}")
    number = int(value)
    if not INT32_MIN <= number <= INT32_MAX:
        raise ValueError(f"value out of int32 range: {value}")
    return number

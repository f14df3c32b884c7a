"""Pydantic models for request/response validation."""
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from ..shared.models import INT32_MIN, INT32_MAX, Election, Timestamp


class TimestampModel(BaseModel):
    """Seconds/nanos timestamp as exchanged over JSON."""

    seconds: int = Field(default=0, strict=True, description="Seconds since the Unix epoch")
    nanos: int = Field(default=0, strict=True, description="Nanoseconds within the second")

    class Config:
        extra = "forbid"

    def to_timestamp(self) -> Timestamp:
        return Timestamp(seconds=self.seconds, nanos=self.nanos)


class ElectionRequest(BaseModel):
    """Election create/replace request model."""

    id: int = Field(..., strict=True, ge=INT32_MIN, le=INT32_MAX, description="Election identifier")
    candidates: List[str] = Field(..., description="Names eligible to receive votes")
    end: Optional[TimestampModel] = Field(default=None, description="Close of voting")
    start: Optional[TimestampModel] = Field(default=None, description="Ignored, set by the server")

    @validator("id")
    def validate_id(cls, v):
        """Validate id is positive."""
        if v <= 0:
            raise ValueError("id must be positive")
        return v

    @validator("candidates")
    def validate_candidates(cls, v):
        """Validate candidate list is non-empty with distinct, non-blank names."""
        if not v:
            raise ValueError("candidates cannot be empty")
        if any(not name or not name.strip() for name in v):
            raise ValueError("candidate names cannot be empty")
        if len(set(v)) != len(v):
            raise ValueError("candidate names must be distinct")
        return v

    class Config:
        extra = "forbid"
        json_schema_extra = {
            "example": {
                "id": 1,
                "candidates": ["alice", "bob"],
                "end": {"seconds": 1893456000}
            }
        }

    def to_election(self, start: Timestamp) -> Election:
        return Election(
            id=self.id,
            candidates=list(self.candidates),
            start=start,
            end=self.end.to_timestamp() if self.end else None,
        )


class ElectionResponse(BaseModel):
    """Election document response model."""

    id: int
    start: Optional[TimestampModel] = None
    end: Optional[TimestampModel] = None
    candidates: List[str]

    class Config:
        json_schema_extra = {
            "example": {
                "id": 1,
                "start": {"seconds": 1705312200, "nanos": 0},
                "end": {"seconds": 1893456000, "nanos": 0},
                "candidates": ["alice", "bob"]
            }
        }

"""Pydantic models for request/response validation."""
from pydantic import BaseModel, Field, validator

from ..shared.models import INT32_MIN, INT32_MAX, Vote


class VoteRequest(BaseModel):
    """Vote submission request model."""

    election_id: int = Field(
        ...,
        alias="electionId",
        strict=True,
        ge=INT32_MIN,
        le=INT32_MAX,
        description="Election identifier"
    )
    candidate: str = Field(..., strict=True, description="Chosen candidate")

    @validator("election_id")
    def validate_election_id(cls, v):
        """Validate electionId is positive."""
        if v <= 0:
            raise ValueError("electionId must be positive")
        return v

    @validator("candidate")
    def validate_candidate(cls, v):
        """Validate candidate is not empty."""
        if not v or not v.strip():
            raise ValueError("candidate cannot be empty")
        return v

    class Config:
        extra = "forbid"
        json_schema_extra = {
            "example": {
                "electionId": 1,
                "candidate": "alice"
            }
        }

    def to_vote(self) -> Vote:
        return Vote(election_id=self.election_id, candidate=self.candidate)


class VoteResponse(BaseModel):
    """Vote submission response model, echoing the published vote."""

    electionId: int = Field(..., description="Election identifier")
    candidate: str = Field(..., description="Chosen candidate")

    class Config:
        json_schema_extra = {
            "example": {
                "electionId": 1,
                "candidate": "alice"
            }
        }

"""Pydantic models for request/response validation."""
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from ..shared.models import AdmissionResult, Candidate, Election, ElectionResults, Vote

# Largest id a PostgreSQL INTEGER column holds
MAX_ID = 2**31 - 1


class CastVoteRequest(BaseModel):
    """Vote submission request model."""

    election_id: int = Field(..., gt=0, le=MAX_ID, description="Target election ID")
    candidate_id: int = Field(..., gt=0, le=MAX_ID, description="Chosen candidate ID")

    class Config:
        json_schema_extra = {
            "example": {
                "election_id": 1,
                "candidate_id": 3
            }
        }


class VoteOut(BaseModel):
    """A committed vote."""

    voter_id: str
    election_id: int
    candidate_id: int
    cast_at: datetime

    @classmethod
    def from_vote(cls, vote: Vote) -> "VoteOut":
        return cls(**vote.to_dict())


class CastVoteResponse(BaseModel):
    """Vote submission response model."""

    status: Literal["committed"] = Field(..., description="Outcome of the attempt")
    vote: VoteOut
    message: str = Field(default="Vote cast successfully", description="Response message")

    @classmethod
    def from_result(cls, result: AdmissionResult) -> "CastVoteResponse":
        return cls(
            status=result.status.value,
            vote=VoteOut.from_vote(result.vote),
            message=result.message
        )


class VoteStatusResponse(BaseModel):
    """Whether the caller has voted in an election, with the vote if so."""

    election_id: int
    has_voted: bool
    vote: Optional[VoteOut] = None


class ElectionOut(BaseModel):
    id: int
    title: str
    description: str = ""
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_election(cls, election: Election) -> "ElectionOut":
        return cls(**election.to_dict())


class CandidateTallyOut(BaseModel):
    candidate_id: int
    name: str = ""
    party: Optional[str] = None
    vote_count: int
    percentage: float = Field(..., description="Share of total votes, two decimals")


class ElectionResultsResponse(BaseModel):
    """Election results response model."""

    election_id: int
    election: Optional[ElectionOut] = None
    per_candidate: list[CandidateTallyOut]
    total_votes: int
    total_candidates: int
    computed_at: datetime

    @classmethod
    def from_results(cls, results: ElectionResults) -> "ElectionResultsResponse":
        return cls(**results.to_dict())

    class Config:
        json_schema_extra = {
            "example": {
                "election_id": 1,
                "election": {
                    "id": 1,
                    "title": "Municipal Election",
                    "description": "",
                    "start_time": "2025-01-15T08:00:00Z",
                    "end_time": "2025-01-15T20:00:00Z"
                },
                "per_candidate": [
                    {"candidate_id": 1, "name": "Asha Verma", "party": "Progressive Alliance",
                     "vote_count": 2, "percentage": 66.67},
                    {"candidate_id": 2, "name": "Rahul Mehta", "party": "National Front",
                     "vote_count": 1, "percentage": 33.33}
                ],
                "total_votes": 3,
                "total_candidates": 2,
                "computed_at": "2025-01-15T10:30:00Z"
            }
        }


class CandidateOut(BaseModel):
    id: int
    election_id: int
    name: str
    party: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "CandidateOut":
        return cls(**candidate.to_dict())


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(..., description="Health check timestamp")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict = Field(default_factory=dict, description="Additional error details")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "already_voted",
                "message": "You have already voted in this election",
                "details": {"election_id": 1}
            }
        }

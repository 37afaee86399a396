"""
Shared data models and utilities for the ballot services.

This module contains:
- Election, Candidate and Vote records
- RequestContext: explicit per-request state passed into the core
- Admission states, statuses and rejection reasons
- Result types produced by the tally aggregator
- Clock helpers
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List


class AdmissionState(str, Enum):
    """States of a single vote admission attempt."""
    RECEIVED = "received"
    IDENTITY_RESOLVED = "identity_resolved"
    WINDOW_CHECKED = "window_checked"
    MEMBERSHIP_CHECKED = "membership_checked"
    COMMITTED = "committed"
    REJECTED = "rejected"


class AdmissionStatus(str, Enum):
    """Terminal outcome of an admission attempt."""
    COMMITTED = "committed"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    """Why an admission attempt was rejected."""
    UNAUTHENTICATED = "unauthenticated"
    ELECTION_NOT_FOUND = "election_not_found"
    ELECTION_NOT_STARTED = "election_not_started"
    ELECTION_CLOSED = "election_closed"
    CANDIDATE_NOT_FOUND = "candidate_not_found"
    ALREADY_VOTED = "already_voted"


REJECTION_MESSAGES = {
    RejectionReason.UNAUTHENTICATED: "Not authenticated",
    RejectionReason.ELECTION_NOT_FOUND: "Election not found",
    RejectionReason.ELECTION_NOT_STARTED: "Election has not started yet",
    RejectionReason.ELECTION_CLOSED: "Election has ended",
    RejectionReason.CANDIDATE_NOT_FOUND: "Candidate not found in this election",
    RejectionReason.ALREADY_VOTED: "You have already voted in this election",
}


def utc_now() -> datetime:
    """
    Get the current server time.

    Returns:
        datetime: Timezone-aware UTC datetime
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive datetimes are assumed to already be in UTC.

    Args:
        value: Datetime to normalize

    Returns:
        datetime: Timezone-aware UTC datetime
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class RequestContext:
    """
    Credentials and client details of one incoming request.

    Attributes:
        authorization: Raw Authorization header value, if any
        cookies: Request cookies
        client_ip: Remote address, used for logging only
    """
    authorization: Optional[str] = None
    cookies: Dict[str, str] = field(default_factory=dict)
    client_ip: Optional[str] = None


@dataclass(frozen=True)
class Election:
    """An election and its admission window."""
    id: int
    title: str
    start_time: datetime
    end_time: datetime
    description: str = ""

    def window_contains(self, moment: datetime) -> bool:
        """Check whether a moment falls inside [start_time, end_time]."""
        moment = ensure_utc(moment)
        return ensure_utc(self.start_time) <= moment <= ensure_utc(self.end_time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class Candidate:
    """A candidate standing in exactly one election."""
    id: int
    election_id: int
    name: str = ""
    party: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class Vote:
    """
    A committed vote. Immutable once written to the ledger.

    Attributes:
        voter_id: Stable voter identifier from the identity verifier
        election_id: Election the vote was cast in
        candidate_id: Candidate voted for
        cast_at: Server time at which the vote was admitted
    """
    voter_id: str
    election_id: int
    candidate_id: int
    cast_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class AdmissionResult:
    """
    Outcome of one admission attempt.

    Exactly one of ``vote`` (when committed) or ``reason`` (when
    rejected) is set. ``trail`` lists the states the attempt passed
    through, ending in its terminal state.
    """
    status: AdmissionStatus
    vote: Optional[Vote] = None
    reason: Optional[RejectionReason] = None
    trail: List[AdmissionState] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.status == AdmissionStatus.COMMITTED

    @property
    def message(self) -> str:
        if self.reason is not None:
            return REJECTION_MESSAGES[self.reason]
        return "Vote cast successfully"


@dataclass(frozen=True)
class CandidateTally:
    """Vote count and share for one candidate."""
    candidate_id: int
    vote_count: int
    percentage: float
    name: str = ""
    party: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ElectionResults:
    """Ranked results snapshot for one election."""
    election_id: int
    per_candidate: List[CandidateTally]
    total_votes: int
    computed_at: datetime
    election: Optional[Election] = None

    @property
    def total_candidates(self) -> int:
        return len(self.per_candidate)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "election_id": self.election_id,
            "election": self.election.to_dict() if self.election else None,
            "per_candidate": [tally.to_dict() for tally in self.per_candidate],
            "total_votes": self.total_votes,
            "total_candidates": self.total_candidates,
            "computed_at": self.computed_at,
        }

"""Vote ledger interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from ..shared.models import Vote


@dataclass(frozen=True)
class CommitResult:
    """
    Outcome of a ledger commit.

    Attributes:
        committed: True if this call inserted the vote
        vote: The vote that was inserted, None on a duplicate
    """
    committed: bool
    vote: Optional[Vote] = None

    @property
    def already_voted(self) -> bool:
        return not self.committed


class VoteLedger(ABC):
    """
    Durable store of committed votes.

    The ledger is the only writer of votes and the sole enforcement point
    of one vote per (voter, election). Implementations must make the
    duplicate check and the insert a single indivisible operation.
    """

    @abstractmethod
    async def try_commit(
        self,
        voter_id: str,
        election_id: int,
        candidate_id: int,
        timestamp: datetime
    ) -> CommitResult:
        """
        Insert a vote unless this voter already voted in this election.

        Raises:
            LedgerUnavailableError: If storage failed; the outcome is unknown
            ReferentialIntegrityError: If storage rejected the candidate
        """

    @abstractmethod
    async def counts_by_candidate(self, election_id: int) -> Dict[int, int]:
        """Snapshot of vote counts per candidate. Never blocks commits."""

    @abstractmethod
    async def get_vote(self, voter_id: str, election_id: int) -> Optional[Vote]:
        """Point lookup of a committed vote."""

    async def has_voted(self, voter_id: str, election_id: int) -> bool:
        """Non-authoritative status check; duplicates are still rejected by try_commit."""
        return await self.get_vote(voter_id, election_id) is not None

    async def total_votes(self, election_id: int) -> int:
        counts = await self.counts_by_candidate(election_id)
        return sum(counts.values())

    async def check_health(self) -> bool:
        return True

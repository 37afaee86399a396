"""In-process vote ledger for development and tests."""
import logging
import threading
from collections import Counter
from datetime import datetime
from typing import Dict, Optional, Tuple

from .base import CommitResult, VoteLedger
from ..shared.models import Vote, ensure_utc

logger = logging.getLogger(__name__)


class InMemoryVoteLedger(VoteLedger):
    """
    Vote ledger backed by a dict keyed on (voter_id, election_id).

    A single lock guards the check-and-insert and the running per-election
    counters. It is held only for dict operations, never across an await,
    so it is safe to share between event loop tasks and threads alike.
    """

    def __init__(self):
        self._votes: Dict[Tuple[str, int], Vote] = {}
        self._counts: Dict[int, Counter] = {}
        self._lock = threading.Lock()

    async def try_commit(
        self,
        voter_id: str,
        election_id: int,
        candidate_id: int,
        timestamp: datetime
    ) -> CommitResult:
        key = (voter_id, election_id)
        vote = Vote(
            voter_id=voter_id,
            election_id=election_id,
            candidate_id=candidate_id,
            cast_at=ensure_utc(timestamp)
        )

        with self._lock:
            if key in self._votes:
                return CommitResult(committed=False)
            self._votes[key] = vote
            self._counts.setdefault(election_id, Counter())[candidate_id] += 1

        logger.debug(f"Vote committed: voter={voter_id}, election={election_id}")
        return CommitResult(committed=True, vote=vote)

    async def counts_by_candidate(self, election_id: int) -> Dict[int, int]:
        with self._lock:
            counts = self._counts.get(election_id)
            return dict(counts) if counts else {}

    async def get_vote(self, voter_id: str, election_id: int) -> Optional[Vote]:
        return self._votes.get((voter_id, election_id))

    def __len__(self) -> int:
        return len(self._votes)

"""In-process election directory for development and tests."""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .base import ElectionDirectory
from ..shared.models import Candidate, Election, utc_now


class InMemoryElectionDirectory(ElectionDirectory):
    """
    Election directory seeded up front.

    Candidates keep the order in which they were added, which is the
    creation order used to break ties in results.
    """

    def __init__(
        self,
        elections: Iterable[Election] = (),
        candidates: Iterable[Candidate] = ()
    ):
        self._elections: Dict[int, Election] = {}
        self._candidates: Dict[int, Candidate] = {}
        for election in elections:
            self.add_election(election)
        for candidate in candidates:
            self.add_candidate(candidate)

    def add_election(self, election: Election) -> Election:
        self._elections[election.id] = election
        return election

    def add_candidate(self, candidate: Candidate) -> Candidate:
        if candidate.election_id not in self._elections:
            raise ValueError(f"Unknown election {candidate.election_id}")
        self._candidates[candidate.id] = candidate
        return candidate

    async def get_election(self, election_id: int) -> Optional[Election]:
        return self._elections.get(election_id)

    async def get_candidate(self, candidate_id: int) -> Optional[Candidate]:
        return self._candidates.get(candidate_id)

    async def list_candidates(self, election_id: int) -> List[Candidate]:
        return [c for c in self._candidates.values() if c.election_id == election_id]

    async def list_elections(
        self,
        active_only: bool = False,
        now: Optional[datetime] = None
    ) -> List[Election]:
        elections = list(self._elections.values())
        if active_only:
            moment = now or utc_now()
            elections = [e for e in elections if e.window_contains(moment)]
        return sorted(elections, key=lambda e: (e.start_time, e.id), reverse=True)

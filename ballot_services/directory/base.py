"""Read-only election directory interface."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..shared.models import Candidate, Election


class ElectionDirectory(ABC):
    """Read-only lookups of elections and candidate membership."""

    @abstractmethod
    async def get_election(self, election_id: int) -> Optional[Election]:
        """Return the election, or None if it does not exist."""

    @abstractmethod
    async def get_candidate(self, candidate_id: int) -> Optional[Candidate]:
        """Return the candidate, or None if it does not exist."""

    @abstractmethod
    async def list_candidates(self, election_id: int) -> List[Candidate]:
        """Candidates of an election in creation order."""

    @abstractmethod
    async def list_elections(
        self,
        active_only: bool = False,
        now: Optional[datetime] = None
    ) -> List[Election]:
        """Elections, most recent start first; optionally only open ones."""

    async def check_health(self) -> bool:
        return True

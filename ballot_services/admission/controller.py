"""
Vote admission controller.

Drives one vote attempt through

    RECEIVED -> IDENTITY_RESOLVED -> WINDOW_CHECKED -> MEMBERSHIP_CHECKED
             -> COMMITTED | REJECTED

Every rejection is terminal; nothing is retried automatically. All
lookups finish before the ledger is touched, so a failure at any step
leaves the ledger unchanged.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, TypeVar
from datetime import datetime

from prometheus_client import Counter, Histogram

from ..config import settings
from ..directory.base import ElectionDirectory
from ..identity.verifier import IdentityVerifier
from ..ledger.base import VoteLedger
from ..ledger.status_cache import RedisVoteStatusCache
from ..shared.errors import (
    DirectoryUnavailableError,
    ReferentialIntegrityError,
    ServiceUnavailableError,
)
from ..shared.models import (
    AdmissionResult,
    AdmissionState,
    AdmissionStatus,
    RejectionReason,
    RequestContext,
    Vote,
    ensure_utc,
    utc_now,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Prometheus metrics
vote_admissions_total = Counter(
    "vote_admissions_total",
    "Total number of vote admission attempts by outcome",
    ["outcome"]
)
admission_duration = Histogram(
    "vote_admission_duration_seconds",
    "Time spent admitting a single vote",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)


class VoteAdmissionController:
    """Validates vote attempts end-to-end and commits them to the ledger."""

    def __init__(
        self,
        identity_verifier: IdentityVerifier,
        directory: ElectionDirectory,
        ledger: VoteLedger,
        status_cache: Optional[RedisVoteStatusCache] = None,
        clock: Callable[[], datetime] = utc_now,
        directory_timeout: Optional[float] = None
    ):
        self.identity_verifier = identity_verifier
        self.directory = directory
        self.ledger = ledger
        self.status_cache = status_cache
        self.clock = clock
        self.directory_timeout = (
            directory_timeout if directory_timeout is not None
            else settings.DIRECTORY_TIMEOUT_SECONDS
        )

    async def cast_vote(
        self,
        context: RequestContext,
        election_id: int,
        candidate_id: int
    ) -> AdmissionResult:
        """
        Run one admission attempt.

        Args:
            context: Credentials of the request
            election_id: Target election
            candidate_id: Chosen candidate

        Returns:
            AdmissionResult: COMMITTED with the vote, or REJECTED with a reason

        Raises:
            ServiceUnavailableError: If the directory or ledger failed. When
                raised from the commit step the outcome is unknown and the
                caller must re-query vote status before retrying.
        """
        start_time = time.perf_counter()
        trail = [AdmissionState.RECEIVED]
        try:
            result = await self._admit(context, election_id, candidate_id, trail)
        except ServiceUnavailableError as e:
            vote_admissions_total.labels(outcome="unavailable").inc()
            logger.error(
                f"Vote admission aborted at {trail[-1].value}: "
                f"election={election_id}, candidate={candidate_id}: {e}"
            )
            raise
        finally:
            admission_duration.observe(time.perf_counter() - start_time)

        outcome = result.reason.value if result.reason else AdmissionStatus.COMMITTED.value
        vote_admissions_total.labels(outcome=outcome).inc()

        if result.committed:
            logger.info(
                f"Vote committed: voter={result.vote.voter_id}, "
                f"election={election_id}, candidate={candidate_id}"
            )
        else:
            logger.info(
                f"Vote rejected ({outcome}) at {trail[-2].value}: "
                f"election={election_id}, candidate={candidate_id}, "
                f"client={context.client_ip}"
            )
        return result

    async def _admit(
        self,
        context: RequestContext,
        election_id: int,
        candidate_id: int,
        trail: List[AdmissionState]
    ) -> AdmissionResult:
        # RECEIVED -> IDENTITY_RESOLVED
        voter_id = self.identity_verifier.resolve_identity(context)
        if voter_id is None:
            return self._reject(trail, RejectionReason.UNAUTHENTICATED)
        trail.append(AdmissionState.IDENTITY_RESOLVED)

        # IDENTITY_RESOLVED -> WINDOW_CHECKED
        election = await self._lookup(self.directory.get_election(election_id))
        if election is None:
            return self._reject(trail, RejectionReason.ELECTION_NOT_FOUND)

        now = ensure_utc(self.clock())
        if now < ensure_utc(election.start_time):
            return self._reject(trail, RejectionReason.ELECTION_NOT_STARTED)
        if now > ensure_utc(election.end_time):
            return self._reject(trail, RejectionReason.ELECTION_CLOSED)
        trail.append(AdmissionState.WINDOW_CHECKED)

        # WINDOW_CHECKED -> MEMBERSHIP_CHECKED
        candidate = await self._lookup(self.directory.get_candidate(candidate_id))
        if candidate is None or candidate.election_id != election.id:
            return self._reject(trail, RejectionReason.CANDIDATE_NOT_FOUND)
        trail.append(AdmissionState.MEMBERSHIP_CHECKED)

        # MEMBERSHIP_CHECKED -> COMMITTED | REJECTED
        try:
            commit = await self.ledger.try_commit(voter_id, election.id, candidate.id, now)
        except ReferentialIntegrityError:
            return self._reject(trail, RejectionReason.CANDIDATE_NOT_FOUND)

        if self.status_cache is not None:
            await self.status_cache.remember(voter_id, election.id)

        if commit.already_voted:
            return self._reject(trail, RejectionReason.ALREADY_VOTED)

        trail.append(AdmissionState.COMMITTED)
        return AdmissionResult(status=AdmissionStatus.COMMITTED, vote=commit.vote, trail=trail)

    async def _lookup(self, lookup: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(lookup, timeout=self.directory_timeout)
        except asyncio.TimeoutError as e:
            raise DirectoryUnavailableError(
                f"Election directory did not answer within {self.directory_timeout}s"
            ) from e

    @staticmethod
    def _reject(trail: List[AdmissionState], reason: RejectionReason) -> AdmissionResult:
        trail.append(AdmissionState.REJECTED)
        return AdmissionResult(status=AdmissionStatus.REJECTED, reason=reason, trail=trail)

    async def get_vote_status(self, context: RequestContext, election_id: int) -> Optional[bool]:
        """
        Check whether the caller has voted in an election.

        Returns:
            True or False, or None if the caller is not authenticated
        """
        voter_id = self.identity_verifier.resolve_identity(context)
        if voter_id is None:
            return None

        if self.status_cache is not None:
            if await self.status_cache.is_known_voter(voter_id, election_id):
                return True

        has_voted = await self.ledger.has_voted(voter_id, election_id)
        if has_voted and self.status_cache is not None:
            await self.status_cache.remember(voter_id, election_id)
        return has_voted

    async def get_own_vote(self, context: RequestContext, election_id: int) -> Optional[Vote]:
        """The caller's committed vote in an election, if any. Always read from the ledger."""
        voter_id = self.identity_verifier.resolve_identity(context)
        if voter_id is None:
            return None
        return await self.ledger.get_vote(voter_id, election_id)

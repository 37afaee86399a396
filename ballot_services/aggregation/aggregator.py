"""
Tally aggregation for election results.

Reads vote counts from the ledger as a snapshot and turns them into a
ranked, percentage-annotated view. Never part of the write path.
"""
import asyncio
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from prometheus_client import Gauge

from ..config import settings
from ..directory.base import ElectionDirectory
from ..ledger.base import VoteLedger
from ..shared.errors import ServiceUnavailableError
from ..shared.models import Candidate, CandidateTally, ElectionResults, utc_now

logger = logging.getLogger(__name__)

# Prometheus metrics
current_vote_totals = Gauge(
    "current_vote_totals",
    "Current vote totals",
    ["election_id", "candidate_id"]
)

PERCENTAGE_QUANTUM = Decimal("0.01")


def vote_percentage(vote_count: int, total_votes: int) -> float:
    """
    Share of the total, in percent, rounded half-up to two decimals.

    Returns 0 when there are no votes at all.
    """
    if total_votes == 0:
        return 0.0
    share = Decimal(vote_count) * 100 / Decimal(total_votes)
    return float(share.quantize(PERCENTAGE_QUANTUM, rounding=ROUND_HALF_UP))


class TallyAggregator:
    """Computes election results from ledger snapshots."""

    def __init__(self, ledger: VoteLedger, directory: ElectionDirectory):
        self.ledger = ledger
        self.directory = directory
        self.running = False
        self._refresh_task: Optional[asyncio.Task] = None

    async def compute_results(self, election_id: int) -> Optional[ElectionResults]:
        """
        Get ranked results for an election.

        Candidates are ordered by vote count, highest first. Ties keep
        candidate creation order.

        Args:
            election_id: Election identifier

        Returns:
            ElectionResults, or None if the election does not exist
        """
        election = await self.directory.get_election(election_id)
        if election is None:
            return None

        candidates = await self.directory.list_candidates(election_id)
        counts = await self.ledger.counts_by_candidate(election_id)
        computed_at = utc_now()

        by_id: Dict[int, Candidate] = {c.id: c for c in candidates}
        creation_order: Dict[int, int] = {c.id: index for index, c in enumerate(candidates)}
        # Counted candidates missing from the directory still count towards the total
        for candidate_id in sorted(set(counts) - set(creation_order)):
            logger.warning(
                f"Votes recorded for candidate {candidate_id} not listed in election {election_id}"
            )
            creation_order[candidate_id] = len(creation_order)

        total_votes = sum(counts.values())
        ranked = sorted(
            creation_order,
            key=lambda candidate_id: (-counts.get(candidate_id, 0), creation_order[candidate_id])
        )

        per_candidate: List[CandidateTally] = [
            CandidateTally(
                candidate_id=candidate_id,
                vote_count=counts.get(candidate_id, 0),
                percentage=vote_percentage(counts.get(candidate_id, 0), total_votes),
                name=by_id[candidate_id].name if candidate_id in by_id else "",
                party=by_id[candidate_id].party if candidate_id in by_id else None
            )
            for candidate_id in ranked
        ]

        return ElectionResults(
            election_id=election_id,
            per_candidate=per_candidate,
            total_votes=total_votes,
            computed_at=computed_at,
            election=election
        )

    async def compute_all_results(self) -> List[ElectionResults]:
        """Results for every election, most recent first."""
        elections = await self.directory.list_elections()
        results = []
        for election in elections:
            election_results = await self.compute_results(election.id)
            if election_results is not None:
                results.append(election_results)
        return results

    async def sync_vote_counts_to_prometheus(self):
        """Publish current totals of open elections to Prometheus gauges."""
        elections = await self.directory.list_elections(active_only=True, now=utc_now())
        for election in elections:
            counts = await self.ledger.counts_by_candidate(election.id)
            for candidate_id, vote_count in counts.items():
                current_vote_totals.labels(
                    election_id=str(election.id),
                    candidate_id=str(candidate_id)
                ).set(vote_count)

    async def _refresh_loop(self, interval: float):
        """Background task refreshing gauges every ``interval`` seconds."""
        while self.running:
            try:
                await self.sync_vote_counts_to_prometheus()
            except ServiceUnavailableError as e:
                logger.error(f"Error syncing vote counts to Prometheus: {e}")
            except Exception as e:
                logger.error(f"Unexpected error in results refresh loop: {e}", exc_info=True)
            await asyncio.sleep(interval)

    def start(self, interval: Optional[float] = None):
        """Start the periodic refresh in the running event loop."""
        if self._refresh_task is not None:
            return
        interval = interval if interval is not None else settings.RESULTS_REFRESH_SECONDS
        self.running = True
        self._refresh_task = asyncio.create_task(self._refresh_loop(interval))
        logger.info(f"Results refresh started (every {interval}s)")

    async def stop(self):
        """Stop the periodic refresh."""
        self.running = False
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        try:
            await self._refresh_task
        except asyncio.CancelledError:
            pass
        self._refresh_task = None
        logger.info("Results refresh stopped")

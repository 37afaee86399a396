"""PostgreSQL vote ledger."""
import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

import asyncpg

from .base import CommitResult, VoteLedger
from ..database import INVALID_INPUT_ERRORS, Database
from ..shared.errors import LedgerUnavailableError, ReferentialIntegrityError
from ..shared.models import Vote, ensure_utc

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


class PostgresVoteLedger(VoteLedger):
    """
    Vote ledger stored in the ``votes`` table.

    Uniqueness is enforced by the ``votes_one_per_voter`` constraint: the
    insert either lands or is discarded by ON CONFLICT inside one
    statement, so concurrent commits for the same key cannot both win.
    """

    def __init__(self, database: Database):
        self.database = database

    async def try_commit(
        self,
        voter_id: str,
        election_id: int,
        candidate_id: int,
        timestamp: datetime
    ) -> CommitResult:
        query = """
            INSERT INTO votes (voter_id, election_id, candidate_id, cast_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT ON CONSTRAINT votes_one_per_voter DO NOTHING
            RETURNING cast_at
        """
        try:
            async with self.database.pool.acquire() as conn:
                cast_at = await conn.fetchval(
                    query, voter_id, election_id, candidate_id, ensure_utc(timestamp)
                )
        except (asyncpg.ForeignKeyViolationError, *INVALID_INPUT_ERRORS) as e:
            logger.warning(
                f"Storage rejected candidate {candidate_id} for election {election_id}: {e}"
            )
            raise ReferentialIntegrityError(str(e)) from e
        except TRANSIENT_ERRORS as e:
            logger.error(
                f"Error committing vote for voter={voter_id}, election={election_id}: {e}"
            )
            raise LedgerUnavailableError(f"Vote commit outcome unknown: {e}") from e

        if cast_at is None:
            return CommitResult(committed=False)

        return CommitResult(
            committed=True,
            vote=Vote(
                voter_id=voter_id,
                election_id=election_id,
                candidate_id=candidate_id,
                cast_at=ensure_utc(cast_at)
            )
        )

    async def counts_by_candidate(self, election_id: int) -> Dict[int, int]:
        query = """
            SELECT candidate_id, COUNT(*) AS vote_count
            FROM votes
            WHERE election_id = $1
            GROUP BY candidate_id
        """
        try:
            async with self.database.pool.acquire() as conn:
                rows = await conn.fetch(query, election_id)
        except TRANSIENT_ERRORS as e:
            logger.error(f"Error counting votes for election {election_id}: {e}")
            raise LedgerUnavailableError(str(e)) from e

        return {row["candidate_id"]: row["vote_count"] for row in rows}

    async def get_vote(self, voter_id: str, election_id: int) -> Optional[Vote]:
        query = """
            SELECT voter_id, election_id, candidate_id, cast_at
            FROM votes
            WHERE voter_id = $1 AND election_id = $2
        """
        try:
            async with self.database.pool.acquire() as conn:
                row = await conn.fetchrow(query, voter_id, election_id)
        except TRANSIENT_ERRORS as e:
            logger.error(f"Error looking up vote for voter={voter_id}: {e}")
            raise LedgerUnavailableError(str(e)) from e

        if row is None:
            return None
        return Vote(
            voter_id=row["voter_id"],
            election_id=row["election_id"],
            candidate_id=row["candidate_id"],
            cast_at=ensure_utc(row["cast_at"])
        )

    async def total_votes(self, election_id: int) -> int:
        try:
            async with self.database.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT COUNT(*) FROM votes WHERE election_id = $1", election_id
                )
        except TRANSIENT_ERRORS as e:
            logger.error(f"Error counting votes for election {election_id}: {e}")
            raise LedgerUnavailableError(str(e)) from e

    async def check_health(self) -> bool:
        return await self.database.check_health()

"""PostgreSQL election directory."""
import asyncio
import logging
from datetime import datetime
from typing import List, Optional

import asyncpg

from .base import ElectionDirectory
from ..database import INVALID_INPUT_ERRORS, Database
from ..shared.errors import DirectoryUnavailableError
from ..shared.models import Candidate, Election, ensure_utc, utc_now

logger = logging.getLogger(__name__)


def _election_from_row(row) -> Election:
    return Election(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        start_time=ensure_utc(row["start_time"]),
        end_time=ensure_utc(row["end_time"])
    )


def _candidate_from_row(row) -> Candidate:
    return Candidate(
        id=row["id"],
        election_id=row["election_id"],
        name=row["name"],
        party=row["party"],
        created_at=ensure_utc(row["created_at"])
    )


class PostgresElectionDirectory(ElectionDirectory):
    """Reads elections and candidates; never writes."""

    def __init__(self, database: Database):
        self.database = database

    async def _fetch(self, method: str, query: str, *args):
        try:
            async with self.database.pool.acquire() as conn:
                return await getattr(conn, method)(query, *args)
        except INVALID_INPUT_ERRORS as e:
            # An id the column type cannot hold names no row
            logger.warning(f"Directory lookup with unrepresentable arguments {args}: {e}")
            return [] if method == "fetch" else None
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Error querying election directory: {e}")
            raise DirectoryUnavailableError(str(e)) from e

    async def get_election(self, election_id: int) -> Optional[Election]:
        row = await self._fetch(
            "fetchrow",
            """
                SELECT id, title, description, start_time, end_time
                FROM elections
                WHERE id = $1
            """,
            election_id
        )
        return _election_from_row(row) if row else None

    async def get_candidate(self, candidate_id: int) -> Optional[Candidate]:
        row = await self._fetch(
            "fetchrow",
            """
                SELECT id, election_id, name, party, created_at
                FROM candidates
                WHERE id = $1
            """,
            candidate_id
        )
        return _candidate_from_row(row) if row else None

    async def list_candidates(self, election_id: int) -> List[Candidate]:
        rows = await self._fetch(
            "fetch",
            """
                SELECT id, election_id, name, party, created_at
                FROM candidates
                WHERE election_id = $1
                ORDER BY created_at, id
            """,
            election_id
        )
        return [_candidate_from_row(row) for row in rows]

    async def list_elections(
        self,
        active_only: bool = False,
        now: Optional[datetime] = None
    ) -> List[Election]:
        if active_only:
            rows = await self._fetch(
                "fetch",
                """
                    SELECT id, title, description, start_time, end_time
                    FROM elections
                    WHERE start_time <= $1 AND end_time >= $1
                    ORDER BY start_time DESC, id DESC
                """,
                now or utc_now()
            )
        else:
            rows = await self._fetch(
                "fetch",
                """
                    SELECT id, title, description, start_time, end_time
                    FROM elections
                    ORDER BY start_time DESC, id DESC
                """
            )
        return [_election_from_row(row) for row in rows]

    async def check_health(self) -> bool:
        return await self.database.check_health()

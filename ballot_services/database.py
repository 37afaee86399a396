"""PostgreSQL connection pool and schema."""
import asyncpg
from typing import Optional
import logging

from .config import settings

logger = logging.getLogger(__name__)

# Arguments the server or the driver refused to encode, such as an id beyond
# the INTEGER range. Permanent for that input, never a connectivity fault.
INVALID_INPUT_ERRORS = (asyncpg.DataError, ValueError)


# The UNIQUE constraint on votes is the enforcement point for one vote
# per (voter, election). The composite foreign key keeps every vote's
# candidate inside the vote's election.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS elections (
    id SERIAL PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    start_time TIMESTAMPTZ NOT NULL,
    end_time TIMESTAMPTZ NOT NULL,
    CONSTRAINT elections_window_ordered CHECK (start_time <= end_time)
);

CREATE TABLE IF NOT EXISTS candidates (
    id SERIAL PRIMARY KEY,
    election_id INTEGER NOT NULL REFERENCES elections (id),
    name TEXT NOT NULL,
    party TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT candidates_id_election_key UNIQUE (id, election_id)
);

CREATE TABLE IF NOT EXISTS votes (
    id BIGSERIAL PRIMARY KEY,
    voter_id TEXT NOT NULL,
    election_id INTEGER NOT NULL,
    candidate_id INTEGER NOT NULL,
    cast_at TIMESTAMPTZ NOT NULL,
    CONSTRAINT votes_one_per_voter UNIQUE (voter_id, election_id),
    CONSTRAINT votes_candidate_in_election
        FOREIGN KEY (candidate_id, election_id)
        REFERENCES candidates (id, election_id)
);

CREATE INDEX IF NOT EXISTS votes_election_candidate_idx
    ON votes (election_id, candidate_id);
"""


class Database:
    """Async PostgreSQL connection pool shared by the ledger and directory."""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn or settings.postgres_dsn
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self, min_size: Optional[int] = None, max_size: Optional[int] = None):
        """Initialize database connection pool."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=min_size if min_size is not None else settings.POSTGRES_POOL_MIN_SIZE,
                max_size=max_size if max_size is not None else settings.POSTGRES_POOL_MAX_SIZE,
                command_timeout=settings.POSTGRES_COMMAND_TIMEOUT
            )
            logger.info("PostgreSQL connection pool initialized successfully")

            # Verify connection
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                logger.info("PostgreSQL connection verified")

        except Exception as e:
            logger.error(f"Failed to initialize PostgreSQL connection pool: {e}")
            raise

    async def ensure_schema(self):
        """Create tables and constraints if they do not exist yet."""
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("PostgreSQL schema verified")

    async def check_health(self) -> bool:
        """
        Check PostgreSQL connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        try:
            if not self.pool:
                return False
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool."""
        try:
            if self.pool:
                await self.pool.close()
                logger.info("PostgreSQL connection pool closed successfully")
        except Exception as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")

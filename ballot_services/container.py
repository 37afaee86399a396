"""Construction and teardown of the core's collaborators."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .admission.controller import VoteAdmissionController
from .aggregation.aggregator import TallyAggregator
from .config import settings
from .database import Database
from .directory import ElectionDirectory, PostgresElectionDirectory
from .identity import IdentityVerifier, JwtIdentityVerifier
from .ledger import InMemoryVoteLedger, PostgresVoteLedger, RedisVoteStatusCache, VoteLedger
from .shared.models import utc_now

logger = logging.getLogger(__name__)


@dataclass
class BallotServices:
    """Everything the HTTP layer needs, wired together."""
    identity_verifier: IdentityVerifier
    directory: ElectionDirectory
    ledger: VoteLedger
    controller: VoteAdmissionController
    aggregator: TallyAggregator
    database: Optional[Database] = None
    status_cache: Optional[RedisVoteStatusCache] = None

    @classmethod
    def assemble(
        cls,
        directory: ElectionDirectory,
        ledger: Optional[VoteLedger] = None,
        identity_verifier: Optional[IdentityVerifier] = None,
        status_cache: Optional[RedisVoteStatusCache] = None,
        clock: Callable[[], datetime] = utc_now,
        database: Optional[Database] = None
    ) -> "BallotServices":
        """Wire a controller and aggregator around the given collaborators."""
        ledger = ledger or InMemoryVoteLedger()
        identity_verifier = identity_verifier or JwtIdentityVerifier()
        controller = VoteAdmissionController(
            identity_verifier=identity_verifier,
            directory=directory,
            ledger=ledger,
            status_cache=status_cache,
            clock=clock
        )
        return cls(
            identity_verifier=identity_verifier,
            directory=directory,
            ledger=ledger,
            controller=controller,
            aggregator=TallyAggregator(ledger, directory),
            database=database,
            status_cache=status_cache
        )

    async def check_health(self) -> dict:
        """Connection status of each backing service."""
        services = {}
        if self.database is not None:
            healthy = await self.database.check_health()
            services["postgresql"] = "connected" if healthy else "disconnected"
        if self.status_cache is not None:
            healthy = await self.status_cache.check_health()
            services["redis"] = "connected" if healthy else "disconnected"
        if not services:
            services["ledger"] = "connected" if await self.ledger.check_health() else "disconnected"
        return services

    async def close(self):
        await self.aggregator.stop()
        if self.status_cache is not None:
            await self.status_cache.close()
        if self.database is not None:
            await self.database.close()


async def build_services() -> BallotServices:
    """
    Connect to PostgreSQL and Redis according to settings.

    A running service always stores votes in PostgreSQL. The in-memory
    ledger loses votes on restart; pass it to ``BallotServices.assemble``
    in tests or when embedding the core.
    """
    database = Database()
    await database.initialize()
    await database.ensure_schema()

    status_cache = None
    if settings.STATUS_CACHE_ENABLED:
        status_cache = RedisVoteStatusCache.from_url(settings.redis_url)
        if await status_cache.check_health():
            logger.info("Redis connection established")
        else:
            logger.warning("Redis unavailable, vote status will be read from the ledger")

    return BallotServices.assemble(
        directory=PostgresElectionDirectory(database),
        ledger=PostgresVoteLedger(database),
        status_cache=status_cache,
        database=database
    )

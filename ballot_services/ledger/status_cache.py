"""Redis cache of voters known to have voted."""
import asyncio
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..config import settings

logger = logging.getLogger(__name__)

VOTED_KEY = "voted:{}"


class RedisVoteStatusCache:
    """
    Remembers positive has-voted answers in one Redis SET per election.

    Votes are never deleted, so a cached "yes" never goes stale. A miss
    or any Redis fault means "ask the ledger". The cache is never used to
    decide whether a vote may be committed, and every call is bounded by
    ``timeout`` so an unreachable Redis cannot hold up a response.
    """

    def __init__(self, client: redis.Redis, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout if timeout is not None else settings.STATUS_CACHE_TIMEOUT_SECONDS

    @classmethod
    def from_url(cls, url: str) -> "RedisVoteStatusCache":
        client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_SOCKET_CONNECT_TIMEOUT,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_keepalive=True,
            health_check_interval=30
        )
        return cls(client)

    async def is_known_voter(self, voter_id: str, election_id: int) -> bool:
        """
        Check if a voter is cached as having voted.

        Returns:
            True on a cache hit, False on a miss, Redis error or timeout
        """
        try:
            result = await asyncio.wait_for(
                self.client.sismember(VOTED_KEY.format(election_id), voter_id),
                timeout=self.timeout
            )
            return bool(result)
        except (RedisError, asyncio.TimeoutError) as e:
            logger.warning(f"Redis error checking vote status: {e!r}")
            return False

    async def remember(self, voter_id: str, election_id: int) -> None:
        """Record that a voter has a committed vote in an election."""
        try:
            await asyncio.wait_for(
                self.client.sadd(VOTED_KEY.format(election_id), voter_id),
                timeout=self.timeout
            )
        except (RedisError, asyncio.TimeoutError) as e:
            logger.warning(f"Redis error caching vote status: {e!r}")

    async def check_health(self) -> bool:
        try:
            await asyncio.wait_for(self.client.ping(), timeout=self.timeout)
            return True
        except (RedisError, asyncio.TimeoutError) as e:
            logger.error(f"Redis health check failed: {e!r}")
            return False

    async def close(self):
        try:
            await self.client.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")

"""Vote ledger: the only writer of committed votes."""

from .base import CommitResult, VoteLedger
from .memory import InMemoryVoteLedger
from .database import PostgresVoteLedger
from .status_cache import RedisVoteStatusCache

__all__ = [
    'CommitResult',
    'VoteLedger',
    'InMemoryVoteLedger',
    'PostgresVoteLedger',
    'RedisVoteStatusCache',
]

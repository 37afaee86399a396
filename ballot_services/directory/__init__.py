"""Election directory: read-only election and candidate lookups."""

from .base import ElectionDirectory
from .memory import InMemoryElectionDirectory
from .database import PostgresElectionDirectory

__all__ = [
    'ElectionDirectory',
    'InMemoryElectionDirectory',
    'PostgresElectionDirectory',
]

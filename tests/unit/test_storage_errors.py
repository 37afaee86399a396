"""Tests for how PostgreSQL driver errors are classified.

A stub pool stands in for asyncpg so the mapping from driver exceptions
to not-found answers or transient faults is checked without a database.
"""

from contextlib import asynccontextmanager

import asyncpg
import pytest

from ballot_services.admission import VoteAdmissionController
from ballot_services.directory import PostgresElectionDirectory
from ballot_services.ledger import PostgresVoteLedger
from ballot_services.shared.errors import (
    DirectoryUnavailableError,
    LedgerUnavailableError,
    ReferentialIntegrityError,
)
from ballot_services.shared.models import RejectionReason, utc_now

OUT_OF_RANGE = 2**40


class RaisingConnection:
    """Connection whose every query raises the given error."""

    def __init__(self, error: Exception):
        self.error = error

    async def fetchrow(self, query, *args):
        raise self.error

    async def fetch(self, query, *args):
        raise self.error

    async def fetchval(self, query, *args):
        raise self.error


class StubPool:
    def __init__(self, error: Exception):
        self.connection = RaisingConnection(error)

    @asynccontextmanager
    async def acquire(self):
        yield self.connection


class StubDatabase:
    def __init__(self, error: Exception):
        self.pool = StubPool(error)


def out_of_range_error() -> Exception:
    return asyncpg.DataError(f"invalid input for query argument $1: {OUT_OF_RANGE} (value out of int32 range)")


@pytest.mark.asyncio
class TestDirectoryErrors:
    """Tests for directory lookups that fail in the driver."""

    async def test_unrepresentable_id_is_not_found(self):
        directory = PostgresElectionDirectory(StubDatabase(out_of_range_error()))

        assert await directory.get_election(OUT_OF_RANGE) is None
        assert await directory.get_candidate(OUT_OF_RANGE) is None
        assert await directory.list_candidates(OUT_OF_RANGE) == []

    async def test_encoding_value_error_is_not_found(self):
        directory = PostgresElectionDirectory(StubDatabase(ValueError("value out of int32 range")))

        assert await directory.get_election(OUT_OF_RANGE) is None

    async def test_lost_connection_is_transient(self):
        directory = PostgresElectionDirectory(
            StubDatabase(asyncpg.ConnectionDoesNotExistError("connection was closed"))
        )

        with pytest.raises(DirectoryUnavailableError):
            await directory.get_election(1)

    async def test_admission_rejects_unrepresentable_election_as_not_found(self, verifier, ledger, context_for):
        directory = PostgresElectionDirectory(StubDatabase(out_of_range_error()))
        controller = VoteAdmissionController(verifier, directory, ledger)

        result = await controller.cast_vote(context_for("v1"), OUT_OF_RANGE, 1)

        assert result.reason == RejectionReason.ELECTION_NOT_FOUND
        assert len(ledger) == 0


@pytest.mark.asyncio
class TestLedgerErrors:
    """Tests for ledger commits that fail in the driver."""

    async def test_unrepresentable_id_is_referential_failure(self):
        ledger = PostgresVoteLedger(StubDatabase(out_of_range_error()))

        with pytest.raises(ReferentialIntegrityError):
            await ledger.try_commit("v1", 1, OUT_OF_RANGE, utc_now())

    async def test_lost_connection_is_transient(self):
        ledger = PostgresVoteLedger(
            StubDatabase(asyncpg.ConnectionDoesNotExistError("connection was closed"))
        )

        with pytest.raises(LedgerUnavailableError):
            await ledger.try_commit("v1", 1, 1, utc_now())

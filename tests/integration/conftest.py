"""Pytest fixtures for integration tests against PostgreSQL.

Fixtures connect to the database named by the POSTGRES_* environment
variables, create the schema, and reset the tables between tests. Tests
using them are skipped when PostgreSQL is not reachable.
"""

import os
from datetime import timedelta
from typing import Dict, Generator

import psycopg2
import pytest
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

from ballot_services.database import SCHEMA_SQL, Database
from ballot_services.shared.models import utc_now


def postgres_dsn() -> str:
    return (
        f"postgresql://{os.getenv('POSTGRES_USER', 'election_user')}"
        f":{os.getenv('POSTGRES_PASSWORD', 'election_pass')}"
        f"@{os.getenv('POSTGRES_HOST', 'localhost')}"
        f":{os.getenv('POSTGRES_PORT', '5432')}"
        f"/{os.getenv('POSTGRES_DB', 'election_db')}"
    )


@pytest.fixture(scope="session")
def postgres_connection():
    """PostgreSQL connection for direct database operations.

    Yields a psycopg2 connection with the schema in place.
    """
    try:
        conn = psycopg2.connect(postgres_dsn(), connect_timeout=3)
    except psycopg2.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)

    with conn.cursor() as cursor:
        cursor.execute(SCHEMA_SQL)

    yield conn

    conn.close()


@pytest.fixture
def postgres_client(postgres_connection) -> Generator:
    """PostgreSQL cursor on empty tables."""
    cursor = postgres_connection.cursor()
    cursor.execute("TRUNCATE TABLE votes, candidates, elections RESTART IDENTITY CASCADE")
    yield cursor
    cursor.close()


@pytest.fixture
def seeded_election(postgres_client) -> Dict[str, int]:
    """An open election with two candidates and a second election with one.

    Returns the generated ids.
    """
    now = utc_now()
    postgres_client.execute(
        """
        INSERT INTO elections (title, start_time, end_time)
        VALUES (%s, %s, %s), (%s, %s, %s)
        RETURNING id
        """,
        (
            "Municipal Election", now - timedelta(hours=1), now + timedelta(hours=1),
            "Ward Council", now - timedelta(hours=1), now + timedelta(hours=1),
        )
    )
    election_id, other_election_id = [row[0] for row in postgres_client.fetchall()]

    postgres_client.execute(
        """
        INSERT INTO candidates (election_id, name, party, created_at)
        VALUES (%s, %s, %s, %s), (%s, %s, %s, %s), (%s, %s, %s, %s)
        RETURNING id
        """,
        (
            election_id, "Asha Verma", "Progressive Alliance", now - timedelta(minutes=2),
            election_id, "Rahul Mehta", "National Front", now - timedelta(minutes=1),
            other_election_id, "Neha Kapoor", None, now,
        )
    )
    c1, c2, c_other = [row[0] for row in postgres_client.fetchall()]

    return {
        "election_id": election_id,
        "other_election_id": other_election_id,
        "c1": c1,
        "c2": c2,
        "c_other": c_other,
    }


@pytest.fixture
async def database(postgres_connection):
    """Async connection pool used by the ledger and directory."""
    db = Database(dsn=postgres_dsn())
    await db.initialize(min_size=2, max_size=10)
    yield db
    await db.close()

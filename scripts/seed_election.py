#!/usr/bin/env python3
"""
Seed a demo election into PostgreSQL.

Creates the schema if needed, inserts one election open for the given
number of hours with a few candidates, and prints a signed token for
each requested test voter.

Usage:
    python scripts/seed_election.py [--title TITLE] [--hours HOURS] [--voters N]

Environment Variables:
    POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB, POSTGRES_USER, POSTGRES_PASSWORD
    JWT_SECRET
"""

import argparse
import asyncio
import sys
from datetime import timedelta

from ballot_services.database import Database
from ballot_services.identity import JwtIdentityVerifier
from ballot_services.shared.models import utc_now

DEFAULT_CANDIDATES = [
    ("Asha Verma", "Progressive Alliance"),
    ("Rahul Mehta", "National Front"),
    ("Neha Kapoor", "Independent"),
]


async def seed(title: str, hours: float, voter_count: int) -> int:
    """Insert the election and candidates; return the new election id."""
    database = Database()
    await database.initialize(min_size=1, max_size=2)
    try:
        await database.ensure_schema()

        start_time = utc_now()
        end_time = start_time + timedelta(hours=hours)

        async with database.pool.acquire() as conn:
            async with conn.transaction():
                election_id = await conn.fetchval(
                    """
                        INSERT INTO elections (title, description, start_time, end_time)
                        VALUES ($1, $2, $3, $4)
                        RETURNING id
                    """,
                    title, "Seeded demo election", start_time, end_time
                )
                for name, party in DEFAULT_CANDIDATES:
                    candidate_id = await conn.fetchval(
                        """
                            INSERT INTO candidates (election_id, name, party)
                            VALUES ($1, $2, $3)
                            RETURNING id
                        """,
                        election_id, name, party
                    )
                    print(f"  Candidate {candidate_id}: {name} ({party})")
    finally:
        await database.close()

    print(f"\n✅ Election {election_id} '{title}' open until {end_time.isoformat()}")

    if voter_count:
        verifier = JwtIdentityVerifier()
        print("\nVoter tokens:")
        for i in range(1, voter_count + 1):
            voter_id = f"voter-{i:04d}"
            print(f"  {voter_id}: {verifier.issue_token(voter_id)}")

    return election_id


def main():
    parser = argparse.ArgumentParser(description="Seed a demo election")
    parser.add_argument("--title", default="General Election", help="Election title")
    parser.add_argument("--hours", type=float, default=24.0, help="Hours the election stays open")
    parser.add_argument("--voters", type=int, default=3, help="Number of voter tokens to print")
    args = parser.parse_args()

    print("=" * 60)
    print(f"SEEDING ELECTION: {args.title}")
    print("=" * 60)

    try:
        asyncio.run(seed(args.title, args.hours, args.voters))
    except Exception as e:
        print(f"\n❌ Seeding failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()

"""Pytest fixtures shared by the unit and integration tests.

Fixtures build the core around in-memory collaborators, a controllable
clock and real signed tokens, so the admission state machine and the
aggregator can be exercised without external services.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx
import pytest

from ballot_services.admission import VoteAdmissionController
from ballot_services.aggregation import TallyAggregator
from ballot_services.api.main import create_app
from ballot_services.container import BallotServices
from ballot_services.directory import InMemoryElectionDirectory
from ballot_services.identity import JwtIdentityVerifier
from ballot_services.ledger import InMemoryVoteLedger
from ballot_services.shared.models import Candidate, Election, RequestContext, utc_now

TEST_SECRET = "test-secret"

T0 = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)
T1 = datetime(2025, 3, 1, 20, 0, tzinfo=timezone.utc)

ELECTION_E = 1
ELECTION_OTHER = 2
ELECTION_FUTURE = 3
ELECTION_STANDING = 4

C1 = 1
C2 = 2
C_OTHER = 3


class FakeClock:
    """Server clock that tests can move."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime):
        self.now = now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock positioned one second after election E opens."""
    return FakeClock(T0 + timedelta(seconds=1))


@pytest.fixture
def directory() -> InMemoryElectionDirectory:
    """Elections and candidates used across tests.

    - Election 1 (E): window [T0, T1], candidates C1 and C2
    - Election 2: same window, candidate 3
    - Election 3: opens a year after T1
    - Election 4: open around the real current time
    """
    now = utc_now()
    return InMemoryElectionDirectory(
        elections=[
            Election(id=ELECTION_E, title="Municipal Election", start_time=T0, end_time=T1),
            Election(id=ELECTION_OTHER, title="Ward Council", start_time=T0, end_time=T1),
            Election(
                id=ELECTION_FUTURE,
                title="Next Year",
                start_time=T1 + timedelta(days=365),
                end_time=T1 + timedelta(days=366)
            ),
            Election(
                id=ELECTION_STANDING,
                title="Standing Referendum",
                start_time=now - timedelta(days=1),
                end_time=now + timedelta(days=1)
            ),
        ],
        candidates=[
            Candidate(id=C1, election_id=ELECTION_E, name="Asha Verma", party="Progressive Alliance"),
            Candidate(id=C2, election_id=ELECTION_E, name="Rahul Mehta", party="National Front"),
            Candidate(id=C_OTHER, election_id=ELECTION_OTHER, name="Neha Kapoor"),
            Candidate(id=40, election_id=ELECTION_FUTURE, name="Future Hopeful"),
            Candidate(id=50, election_id=ELECTION_STANDING, name="Yes"),
            Candidate(id=51, election_id=ELECTION_STANDING, name="No"),
        ]
    )


@pytest.fixture
def ledger() -> InMemoryVoteLedger:
    return InMemoryVoteLedger()


@pytest.fixture
def verifier() -> JwtIdentityVerifier:
    return JwtIdentityVerifier(secret=TEST_SECRET, algorithm="HS256", cookie_name="token")


@pytest.fixture
def token_for(verifier: JwtIdentityVerifier) -> Callable[..., str]:
    """Helper fixture issuing signed voter tokens."""
    def _token(voter_id: str, role: str = "VOTER") -> str:
        return verifier.issue_token(voter_id, role=role)
    return _token


@pytest.fixture
def context_for(token_for) -> Callable[..., RequestContext]:
    """Helper fixture building a request context carrying a bearer token."""
    def _context(voter_id: str, role: str = "VOTER") -> RequestContext:
        return RequestContext(
            authorization=f"Bearer {token_for(voter_id, role)}",
            client_ip="127.0.0.1"
        )
    return _context


@pytest.fixture
def anonymous() -> RequestContext:
    return RequestContext(client_ip="127.0.0.1")


@pytest.fixture
def controller(verifier, directory, ledger, clock) -> VoteAdmissionController:
    return VoteAdmissionController(
        identity_verifier=verifier,
        directory=directory,
        ledger=ledger,
        clock=clock,
        directory_timeout=1.0
    )


@pytest.fixture
def aggregator(ledger, directory) -> TallyAggregator:
    return TallyAggregator(ledger, directory)


@pytest.fixture
def services(verifier, directory, ledger, clock) -> BallotServices:
    return BallotServices.assemble(
        directory=directory,
        ledger=ledger,
        identity_verifier=verifier,
        clock=clock
    )


@pytest.fixture
async def api_client(services: BallotServices):
    """HTTP client talking to the app in-process."""
    app = create_app(services)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring a running PostgreSQL"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )

"""
Ballot services: one vote per voter per election, with live tallies.

Subpackages:
- shared: data models, rejection reasons, exceptions
- ledger: committed votes and the uniqueness guarantee
- directory: read-only election and candidate lookups
- identity: credential verification
- admission: the vote admission state machine
- aggregation: ranked results from ledger snapshots
- api: FastAPI application
"""

__version__ = '1.0.0'

"""
Shared utilities and models for the ballot services.

This package contains common code used across the core and the API:
- Data models (Election, Candidate, Vote, results)
- Admission states and rejection reasons
- Exception hierarchy
- Clock helpers
"""

from .models import (
    AdmissionResult,
    AdmissionState,
    AdmissionStatus,
    Candidate,
    CandidateTally,
    Election,
    ElectionResults,
    RejectionReason,
    RequestContext,
    Vote,
    ensure_utc,
    utc_now,
    REJECTION_MESSAGES,
)
from .errors import (
    VotingServiceError,
    ServiceUnavailableError,
    LedgerUnavailableError,
    DirectoryUnavailableError,
    ReferentialIntegrityError,
)

__all__ = [
    'AdmissionResult',
    'AdmissionState',
    'AdmissionStatus',
    'Candidate',
    'CandidateTally',
    'Election',
    'ElectionResults',
    'RejectionReason',
    'RequestContext',
    'Vote',
    'ensure_utc',
    'utc_now',
    'REJECTION_MESSAGES',
    'VotingServiceError',
    'ServiceUnavailableError',
    'LedgerUnavailableError',
    'DirectoryUnavailableError',
    'ReferentialIntegrityError',
]

"""Identity verification for incoming requests."""

from .verifier import (
    Capability,
    IdentityVerifier,
    JwtIdentityVerifier,
    VoterIdentity,
    ROLE_CAPABILITIES,
)

__all__ = [
    'Capability',
    'IdentityVerifier',
    'JwtIdentityVerifier',
    'VoterIdentity',
    'ROLE_CAPABILITIES',
]

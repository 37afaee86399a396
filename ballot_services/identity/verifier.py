"""Resolve voter identities from request credentials."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import JWTError, jwt

from ..config import settings
from ..shared.models import RequestContext

logger = logging.getLogger(__name__)

TOKEN_EXPIRE_DAYS = 7


class Capability(str, Enum):
    """Actions a caller may be allowed to perform."""
    CAST_VOTE = "cast_vote"
    VIEW_STATUS = "view_status"


ROLE_CAPABILITIES = {
    "VOTER": frozenset({Capability.CAST_VOTE, Capability.VIEW_STATUS}),
    "ADMIN": frozenset({Capability.CAST_VOTE, Capability.VIEW_STATUS}),
}


@dataclass(frozen=True)
class VoterIdentity:
    """An authenticated caller."""
    voter_id: str
    role: str = "VOTER"

    def can(self, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES.get(self.role.upper(), frozenset())


class IdentityVerifier(ABC):
    """Turns a request context into a stable voter identity."""

    @abstractmethod
    def resolve(self, context: RequestContext) -> Optional[VoterIdentity]:
        """Return the caller's identity, or None if unauthenticated."""

    def resolve_identity(self, context: RequestContext) -> Optional[str]:
        identity = self.resolve(context)
        return identity.voter_id if identity else None


class JwtIdentityVerifier(IdentityVerifier):
    """
    Verifies signed JWTs carried as a bearer token or an auth cookie.

    The voter id is taken from the ``sub`` claim, falling back to ``id``.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        cookie_name: Optional[str] = None
    ):
        self.secret = secret or settings.JWT_SECRET
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.cookie_name = cookie_name or settings.AUTH_COOKIE_NAME

    def _extract_token(self, context: RequestContext) -> Optional[str]:
        if context.authorization:
            scheme, _, token = context.authorization.partition(" ")
            if scheme.lower() == "bearer" and token:
                return token.strip()

        token = context.cookies.get(self.cookie_name)
        if token and token.startswith("Bearer "):
            token = token[len("Bearer "):]
        return token or None

    def resolve(self, context: RequestContext) -> Optional[VoterIdentity]:
        token = self._extract_token(context)
        if not token:
            return None

        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info(f"Rejected credential from {context.client_ip}: {e}")
            return None

        voter_id = claims.get("sub") or claims.get("id")
        if voter_id is None or str(voter_id) == "":
            return None

        return VoterIdentity(voter_id=str(voter_id), role=str(claims.get("role", "VOTER")))

    def issue_token(self, voter_id: str, role: str = "VOTER", expires_days: int = TOKEN_EXPIRE_DAYS) -> str:
        """Create a signed token for a voter."""
        expire = datetime.now(timezone.utc) + timedelta(days=expires_days)
        return jwt.encode(
            {"sub": str(voter_id), "role": role, "exp": expire},
            self.secret,
            algorithm=self.algorithm
        )

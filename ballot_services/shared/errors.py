"""Exceptions raised by the ballot services core."""


class VotingServiceError(Exception):
    """Base exception for internal faults in the voting core."""
    pass


class ServiceUnavailableError(VotingServiceError):
    """
    A backing service timed out or could not be reached.

    This is the only retryable failure class. When it is raised from a
    commit, the outcome is ambiguous: callers must re-query vote status
    before resubmitting.
    """
    pass


class LedgerUnavailableError(ServiceUnavailableError):
    """The vote ledger could not complete an operation."""
    pass


class DirectoryUnavailableError(ServiceUnavailableError):
    """The election directory could not be reached in time."""
    pass


class ReferentialIntegrityError(VotingServiceError):
    """The storage layer rejected a vote whose candidate is not in its election."""
    pass

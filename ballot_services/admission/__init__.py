"""Vote admission: validate and commit single vote attempts."""

from .controller import VoteAdmissionController

__all__ = ['VoteAdmissionController']

"""Tally aggregation: ranked results computed from ledger snapshots."""

from .aggregator import TallyAggregator, vote_percentage

__all__ = ['TallyAggregator', 'vote_percentage']

"""Unit tests for the ballot services core.

These tests run against in-memory collaborators and need no external
services:

- Vote ledger uniqueness under concurrency
- Admission state machine transitions and rejections
- Tally aggregation ordering and percentages
- Identity verification and capabilities
- Vote status cache behavior
"""

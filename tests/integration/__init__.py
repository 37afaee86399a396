"""Integration tests for the ballot services.

This package contains integration tests for:

- API endpoints served in-process through httpx
- Rejection reason to HTTP status mapping
- Concurrent vote submissions through the API
- The PostgreSQL ledger and directory (requires a running PostgreSQL)
"""

"""
Test suite for mstodo-sync.

This package contains:
- Unit tests for the merge, cache, delta and reconcile core
- Graph client tests against httpx.MockTransport
- End-to-end engine tests against an in-memory To Do service (tests/e2e)
"""

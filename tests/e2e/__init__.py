"""
End-to-end tests against a real Postgres content store.

Run with: E2E_TEST=1 pytest tests/e2e/ -v
"""

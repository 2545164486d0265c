"""
Global pytest configuration and fixtures for metabench tests.

This module provides:
- In-memory content store fixtures
- Settings overrides that keep runs fast and write reports under tmp_path
- The e2e marker and its skip condition

E2E tests talk to a real Postgres database and only run with E2E_TEST=1.
"""

from __future__ import annotations

import os
from typing import Dict, List

import pytest

from metabench.config import settings
from metabench.stores.memory import InMemoryContentStore


# =============================================================================
# Environment Configuration
# =============================================================================


def is_e2e_test() -> bool:
    """Check if we're running E2E tests (vs unit tests)."""
    return os.getenv("E2E_TEST", "").lower() in ("1", "true", "yes")


# =============================================================================
# Store Fixtures
# =============================================================================


class SpyContentStore(InMemoryContentStore):
    """In-memory store that records what the benchmark asked of it."""

    def __init__(self):
        super().__init__()
        self.created: List[Dict[str, str]] = []
        self.resets = 0
        self.query_calls = []
        self.cache_flushes = 0

    async def truncate_records(self) -> None:
        self.resets += 1
        await super().truncate_records()

    async def create_record(self, title, post_type, meta_input):
        self.created.append(dict(meta_input))
        return await super().create_record(title, post_type, meta_input)

    async def query_records(self, query):
        self.query_calls.append(query)
        return await super().query_records(query)

    async def flush_cache(self) -> None:
        self.cache_flushes += 1
        await super().flush_cache()


@pytest.fixture
def memory_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def spy_store() -> SpyContentStore:
    return SpyContentStore()


@pytest.fixture
def fast_settings(monkeypatch, tmp_path):
    """Point report output at tmp_path and drop the reset settle delay."""
    monkeypatch.setattr(settings, "CONTENT_DIR", str(tmp_path / "content"))
    monkeypatch.setattr(settings, "CONTENT_URL", "http://example.test/content")
    monkeypatch.setattr(settings, "RESET_SETTLE_SECONDS", 0.0)
    monkeypatch.setattr(settings, "LOG_FILE", None)
    return settings


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "e2e: marks tests as end-to-end tests requiring real Postgres (deselect with '-m \"not e2e\"')",
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically skip E2E tests unless E2E_TEST=1 is set.
    """
    skip_e2e = pytest.mark.skip(reason="E2E tests require E2E_TEST=1")

    for item in items:
        if "e2e" in item.keywords and not is_e2e_test():
            item.add_marker(skip_e2e)

"""
Benchmark error types.

Every failure the benchmark treats as fatal derives from BenchmarkError so the
CLI can report it and exit non-zero. Time-budget overruns are not errors; the
driver logs them as warnings.
"""

from __future__ import annotations

import logging
import socket

from asyncpg.exceptions import (
    CannotConnectNowError,
    InterfaceError,
    InvalidCatalogNameError,
    InvalidPasswordError,
    PostgresError,
    TooManyConnectionsError,
    UndefinedTableError,
)

logger = logging.getLogger(__name__)


class BenchmarkError(Exception):
    """Base class for fatal benchmark failures."""


class UsageError(BenchmarkError):
    """The run was configured incorrectly (bad or missing options)."""


class StoreConnectionError(BenchmarkError):
    """The content store is unreachable or reports a pending error."""


class DataConsistencyError(BenchmarkError):
    """The store or the measurements disagree with what the run expects."""


_CONNECTION_ERRORS = (
    CannotConnectNowError,
    TooManyConnectionsError,
    InvalidPasswordError,
    InvalidCatalogNameError,
    ConnectionError,
    socket.gaierror,
)

# Server-side or driver-level failures on an otherwise reachable store
_STORE_ERRORS = (PostgresError, InterfaceError)


def classify_store_error(exc: BaseException) -> BenchmarkError | None:
    """
    Map a low-level driver exception to a benchmark error.

    Connectivity failures and any other database error both become a
    StoreConnectionError. Returns None for everything else (file system
    errors included), so callers can re-raise the exception unchanged.
    """
    if isinstance(exc, BenchmarkError):
        return exc
    if isinstance(exc, _CONNECTION_ERRORS):
        logger.debug("Classified %r as a store connection failure", exc)
        return StoreConnectionError(f"Content store unreachable: {exc}")
    if isinstance(exc, _STORE_ERRORS):
        logger.debug("Classified %r as a store failure", exc)
        hint = ""
        if isinstance(exc, UndefinedTableError):
            hint = " (run `metabench setup-schema` first)"
        return StoreConnectionError(f"Content store error: {exc}{hint}")
    return None

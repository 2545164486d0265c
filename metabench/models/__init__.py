"""
Data models for the postmeta benchmark.

This package contains:
- Run configuration (Pydantic)
- Post tiers, post modes and timed operations
- Measurement points collected by the driver
"""

from metabench.models.benchmark import (
    DEFAULT_TIERS,
    POST_COUNTS,
    MeasurementPoint,
    Operation,
    PostMode,
    PostTier,
    RunConfig,
)

__all__ = [
    "DEFAULT_TIERS",
    "POST_COUNTS",
    "MeasurementPoint",
    "Operation",
    "PostMode",
    "PostTier",
    "RunConfig",
]

"""
Benchmark Models

Defines the run configuration (Pydantic) and the measurement records the
driver produces for each metadata count and post tier.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PostTier(str, Enum):
    """Named volumes of posts inserted in one benchmark pass."""

    POSTS_100 = "100_posts"
    POSTS_1K = "1k_posts"
    POSTS_10K = "10k_posts"
    POSTS_100K = "100k_posts"
    POSTS_1M = "1M_posts"

    @property
    def post_count(self) -> int:
        """Number of posts inserted for this tier."""
        return POST_COUNTS[self]


POST_COUNTS = {
    PostTier.POSTS_100: 100,
    PostTier.POSTS_1K: 1_000,
    PostTier.POSTS_10K: 10_000,
    PostTier.POSTS_100K: 100_000,
    PostTier.POSTS_1M: 1_000_000,
}

# Tiers run by --post-mode=all, in order. The larger tiers must be picked
# explicitly.
DEFAULT_TIERS = [PostTier.POSTS_100, PostTier.POSTS_1K, PostTier.POSTS_10K]


class PostMode(str, Enum):
    """Values accepted by --post-mode."""

    ALL = "all"
    POSTS_100 = "100_posts"
    POSTS_1K = "1k_posts"
    POSTS_10K = "10k_posts"
    POSTS_100K = "100k_posts"
    POSTS_1M = "1M_posts"


class Operation(str, Enum):
    """Timed operations recorded per tier."""

    INSERT = "insert"
    QUERY = "query"


class RunConfig(BaseModel):
    """
    Configuration for one benchmark run.

    Immutable once built; the CLI and the YAML loader both construct it.
    """

    model_config = ConfigDict(frozen=True)

    post_mode: PostMode = Field(..., description="Tier to run, or 'all'")
    postmeta_min: int = Field(0, ge=0, description="First metadata count")
    postmeta_max: int = Field(10, ge=0, description="Last metadata count (inclusive)")
    time_limit_seconds: float = Field(
        4 * 60 * 60, gt=0, description="Wall-clock budget for the whole run"
    )

    @model_validator(mode="after")
    def validate_postmeta_range(self):
        if self.postmeta_max < self.postmeta_min:
            raise ValueError(
                f"postmeta_max ({self.postmeta_max}) must be >= "
                f"postmeta_min ({self.postmeta_min})"
            )
        return self

    @property
    def tiers(self) -> List[PostTier]:
        """Ordered tiers this run covers."""
        if self.post_mode == PostMode.ALL:
            return list(DEFAULT_TIERS)
        return [PostTier(self.post_mode.value)]

    @property
    def meta_counts(self) -> range:
        return range(self.postmeta_min, self.postmeta_max + 1)


@dataclass(frozen=True)
class MeasurementPoint:
    """Elapsed time of one operation for one (meta_count, tier) pair."""

    meta_count: int
    tier: str
    operation: str
    elapsed_seconds: float

    @property
    def meta_label(self) -> str:
        return f"{self.meta_count}_metas"

"""Benchmark insert and query latency of posts carrying varying amounts of metadata."""

__version__ = "0.1.0"

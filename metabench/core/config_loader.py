"""
Run Configuration Loader

Loads benchmark run settings from a YAML file and merges them with
command-line overrides into a validated RunConfig.

Example file:

    post_mode: all
    postmeta_min: 0
    postmeta_max: 5
    time_limit_seconds: 3600
    store: postgres
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from metabench.errors import UsageError
from metabench.models import RunConfig

RUN_CONFIG_KEYS = ("post_mode", "postmeta_min", "postmeta_max", "time_limit_seconds")


def load_run_file(path: str | Path) -> Dict[str, Any]:
    """
    Read a YAML run file.

    Args:
        path: Path to the YAML file

    Returns:
        Dict with the file's top-level keys
    """
    run_file = Path(path)
    if not run_file.exists():
        raise UsageError(f"Run file not found: {run_file}")

    with open(run_file, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise UsageError(f"Run file must contain a mapping: {run_file}")
    return data


def build_run_config(
    file_data: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> RunConfig:
    """
    Build a RunConfig from file values, with non-None overrides winning.

    Raises:
        UsageError: if the merged values do not validate
    """
    values: Dict[str, Any] = {
        k: v for k, v in (file_data or {}).items() if k in RUN_CONFIG_KEYS
    }
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    if not values.get("post_mode"):
        raise UsageError("Please pass --post-mode as an argument.")

    try:
        return RunConfig(**values)
    except ValidationError as e:
        raise UsageError(f"Invalid run configuration: {e}") from e

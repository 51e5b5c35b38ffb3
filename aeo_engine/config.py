# aeo_engine/config.py
"""
Centralized configuration management.

Handles loading defaults, merging in settings from pyproject.toml,
and applying runtime overrides.
"""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, MutableMapping

try:
    import tomli
except ImportError:
    tomli = None  # type: ignore

log = logging.getLogger(__name__)

DEFAULT_CATEGORY_WEIGHTS: dict[str, float] = {
    "TECHNICAL": 1.5,
    "CONTENT": 2.0,
    "QUALITY": 1.0,
    "STRUCTURE": 1.0,
    "AUTHORITY": 1.0,
    "MONITORING_KPI": 0.5,
}

DEFAULT_CONFIG: dict[str, Any] = {
    # Upper bound on rules running at once.
    "max_concurrency": 4,
    # Seconds for a whole evaluate_all batch. None waits for every rule.
    "evaluation_deadline": None,
    "lookup_timeout": 10.0,
    # Seconds per LLM provider call before falling through to the next provider.
    "llm_timeout": 60.0,
    "user_agent": "aeo_engine/0.1 (+https://pypi.org/project/aeo_engine/)",
    "disabled_rules": [],
    "category_weights": DEFAULT_CATEGORY_WEIGHTS,
    "wikipedia_api": "https://en.wikipedia.org/w/api.php",
    "wikidata_api": "https://www.wikidata.org/w/api.php",
    "cache": {
        "enabled": True,
        "directory": ".aeo_engine_cache",
        "expire_seconds": 24 * 3600,
        "store_errors": False,
    },
}


def _deep_merge_dict(
    base: MutableMapping[str, Any], overrides: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Recursively merge dicts."""
    for key, value in overrides.items():
        if isinstance(value, MutableMapping) and isinstance(
            base.get(key), MutableMapping
        ):
            base[key] = _deep_merge_dict(base[key], value)
        else:
            base[key] = value
    return base


def load_config(pyproject_path: Path | None = None) -> dict[str, Any]:
    """
    Loads configuration from defaults and merges settings from pyproject.toml.

    1. Starts with a deep copy of DEFAULT_CONFIG.
    2. If `tomli` is installed, it looks for `pyproject.toml`.
    3. If found, settings from `[tool.aeo_engine]` are merged over the defaults.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if tomli is None:
        log.debug("tomli not installed. Skipping pyproject.toml configuration.")
        return config

    if pyproject_path is None:
        pyproject_path = Path.cwd() / "pyproject.toml"

    if not pyproject_path.exists():
        log.debug("No pyproject.toml found at %s. Using default config.", pyproject_path)
        return config

    try:
        with pyproject_path.open("rb") as f:
            toml_data = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError) as e:
        log.warning(
            "Failed to load or parse %s: %s. Using default config.",
            pyproject_path,
            e,
        )
        return config

    project_config = toml_data.get("tool", {}).get("aeo_engine", {})
    if project_config:
        log.info("Loading config from %s", pyproject_path)
        config = _deep_merge_dict(config, project_config)  # type: ignore
    else:
        log.debug("No [tool.aeo_engine] section in %s.", pyproject_path)
    return config

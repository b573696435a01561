"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

    1. config/config.yaml  -- pipeline tuning defaults checked into the repo
    2. .env file           -- local developer overrides (not committed)
    3. Environment vars    -- set at deploy time

``load_config()`` reads the YAML file first, then deep-merges the
environment-derived values from :class:`Settings` on top.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from voxpipe.config.settings import Settings
from voxpipe.utils.errors import ConfigurationError

# Used when config.yaml is missing or leaves a key out.
DEFAULTS: dict[str, Any] = {
    "chunking": {"chunk_size": 1000, "overlap": 200},
    "search": {"default_limit": 5, "overfetch_factor": 3},
    "sync": {"batch_size": 10, "page_size": 100},
    "cost": {"rate_per_minute": 0.30},
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings to merge; a fresh ``Settings()`` when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the YAML file exists but cannot be parsed.
    """
    config: dict[str, Any] = {}
    _deep_merge(config, {section: dict(values) for section, values in DEFAULTS.items()})

    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(message=f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(message=f"{path} must contain a mapping at top level")
        _deep_merge(config, yaml_config)

    if settings is None:
        settings = Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "embedding": {
            "available_providers": settings.get_available_embedding_providers(),
        },
        "vector_store": {
            "persist_dir": settings.chromadb_persist_dir,
            "collection": settings.chromadb_collection,
        },
        "voice_api": {
            "base_url": settings.elevenlabs_base_url,
            "max_retries": settings.voice_api_max_retries,
            "retry_delay": settings.voice_api_retry_delay,
            "timeout": settings.voice_api_timeout,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value

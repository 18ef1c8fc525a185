"""Configuration loader with YAML and environment variable support.

This module provides a configuration loader that reads from ~/.config/postdraft/config.yaml
and allows environment variable overrides using POSTDRAFT_* prefix.

Environment variables:
- POSTDRAFT_GENERATION_ENDPOINT: Override generation endpoint
- POSTDRAFT_GENERATION_API_KEY: Override generation API key
- POSTDRAFT_PERSISTENCE_ENDPOINT: Override posts API base URL
- POSTDRAFT_PERSISTENCE_API_KEY: Override posts API key
- POSTDRAFT_PERSISTENCE_DEBOUNCE_SECONDS: Override autosave quiet period
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from postdraft.models.config import Config
from postdraft.services.exceptions import ConfigFileError


def default_config_path() -> Path:
    """Location of the user configuration file."""
    return Path.home() / ".config" / "postdraft" / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config file. If None, uses ~/.config/postdraft/config.yaml

    Returns:
        Validated Config object

    Raises:
        FileNotFoundError: If config file doesn't exist and no overrides are set
        ConfigFileError: If the file is not valid YAML or its top level is not a mapping
        pydantic.ValidationError: If config values are invalid
    """
    if config_path is None:
        config_path = default_config_path()

    if config_path.exists():
        data = _read_yaml(config_path)
    else:
        data = {}

    data = _apply_env_overrides(data)

    if not data["generation"] and not data["persistence"]:
        raise FileNotFoundError(
            f"Configuration file not found at {config_path} and no POSTDRAFT_* environment variables set.\n"
            "Either create a config file or set environment variables."
        )

    return Config(**data)


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with config_path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigFileError(str(config_path), f"not valid YAML ({e})") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            str(config_path),
            f"expected a mapping of sections, got {type(data).__name__}",
        )
    return data


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration data.

    Environment variables use the format: POSTDRAFT_SECTION_KEY
    For example: POSTDRAFT_GENERATION_ENDPOINT sets data['generation']['endpoint']

    Args:
        data: Base configuration dictionary from YAML

    Returns:
        Configuration dictionary with environment overrides applied
    """
    for section in ("generation", "persistence", "editor"):
        if not isinstance(data.get(section), dict):
            data[section] = {}

    if env_endpoint := os.getenv("POSTDRAFT_GENERATION_ENDPOINT"):
        data["generation"]["endpoint"] = env_endpoint

    if env_api_key := os.getenv("POSTDRAFT_GENERATION_API_KEY"):
        data["generation"]["api_key"] = env_api_key

    if env_endpoint := os.getenv("POSTDRAFT_PERSISTENCE_ENDPOINT"):
        data["persistence"]["endpoint"] = env_endpoint

    if env_api_key := os.getenv("POSTDRAFT_PERSISTENCE_API_KEY"):
        data["persistence"]["api_key"] = env_api_key

    if env_debounce := os.getenv("POSTDRAFT_PERSISTENCE_DEBOUNCE_SECONDS"):
        try:
            data["persistence"]["debounce_seconds"] = float(env_debounce)
        except ValueError:
            pass  # Invalid value, ignore

    return data

"""
Configuration Loader - Load YAML configuration files
"""

from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

from pgcdc.config.settings import CDCSettings, SourceSettings

logger = structlog.get_logger(__name__)


def load_yaml_config(file_path: str) -> Dict[str, Any]:
    """
    Load YAML configuration file

    Args:
        file_path: Path to YAML file

    Returns:
        Dictionary containing configuration

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML file", file=file_path, error=str(e))
        raise

    if config is None:
        logger.warning("Empty configuration file", file=file_path)
        return {}

    if not isinstance(config, dict):
        raise ValueError(f"Configuration file must contain a mapping: {file_path}")

    logger.info("Loaded configuration", file=file_path)
    return config


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge multiple configuration dictionaries (later configs override earlier ones)

    Args:
        *configs: Variable number of configuration dictionaries

    Returns:
        Merged configuration dictionary
    """
    merged: Dict[str, Any] = {}

    for config in configs:
        if not config:
            continue
        _deep_merge(merged, config)

    return merged


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """
    Deep merge override dictionary into base dictionary (in-place)

    Args:
        base: Base dictionary (modified in-place)
        override: Override dictionary
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> CDCSettings:
    """
    Load CDC source configuration from YAML file or environment variables.

    Values from the YAML file are merged with ``overrides`` (e.g. command line
    flags) before validation. Without a file, the source identity comes from
    ``CDC_SOURCE_SERVER_NAME`` / ``CDC_SOURCE_DATABASE_NAME``.

    Args:
        config_path: Optional path to YAML config file
        overrides: Optional nested dictionary applied on top of the file

    Returns:
        CDCSettings: Validated configuration object

    Raises:
        FileNotFoundError: If config file specified but not found
        yaml.YAMLError: If YAML parsing fails
        ValidationError: If configuration validation fails

    Examples:
        >>> config = load_config("config/source.yaml")
        >>> config.source.server_name
        'pg1'
    """
    file_config: Dict[str, Any] = {}
    if config_path:
        file_config = load_yaml_config(config_path)

    merged = merge_configs(file_config, overrides or {})

    if "source" in merged:
        config = CDCSettings(**merged)
    else:
        # Source identity from CDC_SOURCE_* environment variables
        config = CDCSettings(source=SourceSettings(), **merged)

    logger.debug(
        "Configuration loaded successfully",
        server=config.source.server_name,
        db=config.source.database_name,
        from_file=bool(config_path),
    )
    return config

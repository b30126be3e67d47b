"""
Configuration utilities for buyer deduplication.

Provides YAML configuration loading, defaults and validation for the
merge resolver, batch grouping and the pipeline runner. Match weights and
thresholds are fixed and are not part of the configuration.
"""

import copy
import logging
import yaml
from typing import Dict, Any
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/buyer_dedupe.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_default_config() -> Dict[str, Any]:
    """
    Get default buyer deduplication configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "merge": {
            "unsupported_both": "error"
        },
        "batch": {
            "order": "newest_first"
        },
        "input": {
            "column_mapping": {}
        },
        "output": {
            "write_matches": True
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        }
    }


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay a (partial) configuration onto a base configuration.

    Sections present in both are merged key by key; any other override
    value replaces the base value. Neither input is modified and the
    result shares no nested dictionaries with them.

    Args:
        base_config: Base configuration, usually the defaults
        override_config: Values read from a configuration file

    Returns:
        Merged configuration
    """
    merged = copy.deepcopy(base_config)

    for key, value in override_config.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_configs(current, value)
        else:
            merged[key] = copy.deepcopy(value)

    return merged


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from a YAML file on top of the defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning(f"Configuration file {config_path} not found, using defaults")
        return get_default_config()

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration from {config_path}: {e}")
        return get_default_config()

    logger.info(f"Loaded configuration from {config_path}")
    return merge_configs(get_default_config(), config)


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate buyer deduplication configuration.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ["merge", "batch"]

    for section in required_sections:
        if section not in config:
            logger.error(f"Missing required configuration section: {section}")
            return False

    unsupported_both = config["merge"].get("unsupported_both", "error")
    if unsupported_both not in ("error", "primary"):
        logger.error("merge.unsupported_both must be 'error' or 'primary'")
        return False

    order = config["batch"].get("order", "newest_first")
    if order not in ("newest_first", "oldest_first", "input"):
        logger.error("batch.order must be 'newest_first', 'oldest_first' or 'input'")
        return False

    column_mapping = config.get("input", {}).get("column_mapping", {})
    if not isinstance(column_mapping, dict):
        logger.error("input.column_mapping must be a mapping")
        return False

    log_level = config.get("logging", {}).get("level", "INFO")
    if not isinstance(log_level, str) or log_level.upper() not in LOG_LEVELS:
        logger.error(f"logging.level must be one of {', '.join(LOG_LEVELS)}")
        return False

    logger.info("Configuration validation passed")
    return True

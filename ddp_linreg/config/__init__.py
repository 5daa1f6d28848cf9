"""
Configuration Module for ddp_linreg

This module contains all configuration-related functionality for the
ddp_linreg workers: training parameters, data loading settings, process
group settings, and loading of external JSON/YAML job files.

A job configuration has four sections:

    {
        "training_config": {...},       # see training_config.TRAINING_CONFIG
        "data_loader_config": {...},    # see data_config.DATA_LOADER_CONFIG
        "distributed_config": {...},    # see training_config.DISTRIBUTED_CONFIG
        "output_dir": "params"
    }
"""

import copy
import json
import logging
import os
from typing import Any, Dict, Optional

import yaml

from ddp_linreg.config.training_config import (
    TRAINING_CONFIG,
    DISTRIBUTED_CONFIG,
    TrainingConfig,
)
from ddp_linreg.config.data_config import (
    STREAM_CONFIG,
    KAFKA_CONFIG,
    FILE_CONFIG,
    DATA_LOADER_CONFIG,
    DATA_LOADER_TYPES,
    DataLoaderConfig,
)


logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "params"

__all__ = [
    # Training configuration
    'TRAINING_CONFIG',
    'DISTRIBUTED_CONFIG',
    'TrainingConfig',

    # Data configuration
    'STREAM_CONFIG',
    'KAFKA_CONFIG',
    'FILE_CONFIG',
    'DATA_LOADER_CONFIG',
    'DATA_LOADER_TYPES',
    'DataLoaderConfig',

    # Job configuration
    'DEFAULT_OUTPUT_DIR',
    'load_external_config',
    'build_job_config',
]


def load_external_config(config_path: Optional[str] = "config.json") -> Dict[str, Any]:
    """
    Load a job configuration file.

    Files ending in ``.yaml`` or ``.yml`` are parsed with PyYAML, everything
    else as JSON. A missing path yields an empty configuration.

    Raises:
        ValueError: If the file exists but cannot be parsed.
    """
    if not config_path or not os.path.exists(config_path):
        if config_path:
            logger.warning(f"Config file {config_path} not found, using defaults")
        return {}

    with open(config_path, 'r') as f:
        try:
            if config_path.endswith(('.yaml', '.yml')):
                loaded = yaml.safe_load(f)
            else:
                loaded = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to parse config file {config_path}: {e}")

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping at top level")
    return loaded


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def build_job_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Merge ``overrides`` onto the default job configuration.

    Nested sections are merged key by key; other values are replaced.

    Returns:
        Dict[str, Any]: Complete job configuration
    """
    defaults = {
        "training_config": TRAINING_CONFIG,
        "data_loader_config": DATA_LOADER_CONFIG,
        "distributed_config": DISTRIBUTED_CONFIG,
        "output_dir": DEFAULT_OUTPUT_DIR,
    }
    return _merge(defaults, overrides or {})

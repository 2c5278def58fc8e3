# deploy/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the bootstrap and the model pull task.

Applies the following order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (via Pydantic's BaseSettings)
3. YAML Configuration File
4. Command-Line Arguments
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from deploy import config as static_config

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

# CLI destination -> (section, field). A section of None targets AppSettings.
CLI_FIELD_MAP: Dict[str, tuple] = {
    "service_user": (None, "service_user"),
    "log_prefix": (None, "log_prefix"),
    "github_token": ("source", "token"),
    "repository": ("source", "repository"),
    "log_group_name": ("telemetry", "log_group_name"),
    "app_log_stream": ("telemetry", "app_log_stream"),
    "model_pull_stream": ("telemetry", "model_pull_stream"),
    "model_name": ("model_pull", "model_name"),
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates ``source`` with values from ``overrides``. Nested
    dictionaries are merged; a None override never replaces an existing value.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def _read_yaml_file(
    yaml_config_path: Path, logger_to_use: logging.Logger
) -> Dict[str, Any]:
    if not (yaml_config_path.exists() and yaml_config_path.is_file()):
        logger_to_use.info(
            f"Configuration file '{yaml_config_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}
    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data and isinstance(yaml_data, dict):
        logger_to_use.info(f"Loaded configuration from {yaml_config_path}")
        return yaml_data
    if yaml_data is not None:
        logger_to_use.warning(
            f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
    return {}


def _cli_overrides(cli_args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for cli_key, cli_value in vars(cli_args).items():
        if cli_value is None or cli_key not in CLI_FIELD_MAP:
            continue
        section, field = CLI_FIELD_MAP[cli_key]
        if section is None:
            overrides[field] = cli_value
        else:
            overrides.setdefault(section, {})[field] = cli_value
    return overrides


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Union[str, Path] = static_config.CONFIG_FILE_DEFAULT,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the precedence documented in the module
    docstring.

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file. Relative paths
            are resolved against the current directory first, then the project
            root.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        SystemExit: If the merged values fail validation.
    """
    logger_to_use = current_logger if current_logger else module_logger

    # Model defaults < environment variables
    settings_after_env_and_defaults = AppSettings()
    current_values_dict = settings_after_env_and_defaults.model_dump(
        exclude_defaults=False
    )
    # The token is excluded from dumps; carry it over explicitly.
    env_token = settings_after_env_and_defaults.source.token
    if env_token is not None:
        current_values_dict["source"]["token"] = env_token.get_secret_value()

    yaml_config_path = Path(config_file_path)
    if not yaml_config_path.is_absolute() and not yaml_config_path.exists():
        yaml_config_path = static_config.PROJECT_ROOT / yaml_config_path

    current_values_dict = _deep_update(
        current_values_dict, _read_yaml_file(yaml_config_path, logger_to_use)
    )

    if cli_args:
        current_values_dict = _deep_update(
            current_values_dict, _cli_overrides(cli_args)
        )

    try:
        final_settings = AppSettings(**current_values_dict)
    except Exception as e:  # Catch Pydantic validation errors etc.
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    logger_to_use.info("Successfully loaded and validated application settings")

    return final_settings

# deploy/state_manager.py
# -*- coding: utf-8 -*-
"""
Manages the state file for tracking bootstrap progress.

The state file is a plain text file: a header line recording the bootstrap
version, followed by one completed step tag per line. A version mismatch
means the step logic changed, so recorded progress is discarded.
"""

import datetime
import logging
import re
from pathlib import Path
from typing import List, Optional

from common.command_utils import log_deploy
from deploy import config as static_config
from deploy.config_models import AppSettings

module_logger = logging.getLogger(__name__)

VERSION_HEADER_RE = re.compile(r"^# SCRIPT_VERSION:\s*(\S+)", re.MULTILINE)


def _state_path(state_file: Optional[Path]) -> Path:
    return state_file if state_file is not None else static_config.STATE_FILE_PATH


def clear_state_file(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    state_file: Optional[Path] = None,
) -> None:
    """Re-initialize the state file with only its header."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    path = _state_path(state_file)
    log_deploy(
        f"{symbols.get('info', 'ℹ️')} Clearing state file: {path}",
        "info",
        logger_to_use,
        app_settings,
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        f"# SCRIPT_VERSION: {static_config.SCRIPT_VERSION}\n"
        f"# State cleared/re-initialized on {datetime.datetime.now().isoformat()}\n",
        encoding="utf-8",
    )
    path.chmod(0o640)


def initialize_state_system(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    state_file: Optional[Path] = None,
) -> None:
    """
    Ensure the state file exists and belongs to the current bootstrap version.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    path = _state_path(state_file)

    if not path.is_file():
        log_deploy(
            f"{symbols.get('info', 'ℹ️')} State file {path} does not exist. Initializing.",
            "info",
            logger_to_use,
            app_settings,
        )
        clear_state_file(app_settings, logger_to_use, state_file=path)
        return

    match = VERSION_HEADER_RE.search(path.read_text(encoding="utf-8"))
    stored_version = match.group(1) if match else None
    if stored_version != static_config.SCRIPT_VERSION:
        log_deploy(
            f"{symbols.get('warning', '!')} SCRIPT_VERSION mismatch. Stored: {stored_version}, Current: {static_config.SCRIPT_VERSION}",
            "warning",
            logger_to_use,
            app_settings,
        )
        clear_state_file(app_settings, logger_to_use, state_file=path)


def view_completed_steps(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    state_file: Optional[Path] = None,
) -> List[str]:
    """Completed step tags in the order they finished."""
    path = _state_path(state_file)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return []
    return [line.strip() for line in lines if line.strip() and not line.startswith("#")]


def is_step_completed(
    step_tag: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    state_file: Optional[Path] = None,
) -> bool:
    return step_tag in view_completed_steps(
        app_settings, current_logger, state_file=state_file
    )


def mark_step_completed(
    step_tag: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    state_file: Optional[Path] = None,
) -> None:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    path = _state_path(state_file)

    if is_step_completed(step_tag, app_settings, logger_to_use, state_file=path):
        log_deploy(
            f"{symbols.get('info', 'ℹ️')} Step '{step_tag}' was already marked as completed.",
            "debug",
            logger_to_use,
            app_settings,
        )
        return

    log_deploy(
        f"{symbols.get('info', 'ℹ️')} Marking step '{step_tag}' as completed.",
        "info",
        logger_to_use,
        app_settings,
    )
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{step_tag}\n")

# deploy/steps/model_pull_handoff.py
# -*- coding: utf-8 -*-
"""
Hands the long model download off to a detached background process.

The bootstrap writes a settings file for the task (never containing the
repository credential) and a small launcher script, starts the launcher in
its own session with stdio detached, and returns without waiting.
"""

import logging
import subprocess
import sys
from typing import Any, Dict, Optional

import yaml

from common.command_utils import log_deploy
from common.file_utils import write_config_file
from deploy.config import PROJECT_ROOT
from deploy.config_models import AppSettings

module_logger = logging.getLogger(__name__)

# Sections the background task needs. Everything else stays behind.
TASK_CONFIG_SECTIONS = {"log_prefix", "container_runtime_command", "logs", "model_pull"}


def build_task_config(app_settings: AppSettings) -> Dict[str, Any]:
    return app_settings.model_dump(mode="json", include=TASK_CONFIG_SECTIONS)


def render_launcher_script(app_settings: AppSettings) -> str:
    config_path = app_settings.model_pull.task_config_path
    return (
        "#!/bin/bash\n"
        f'cd "{PROJECT_ROOT}" || exit 1\n'
        f'exec "{sys.executable}" -m model_pull.task --config-file "{config_path}"\n'
    )


def launch_detached(
    script_path: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> int:
    """
    Start ``script_path`` in a new session with stdin/stdout/stderr on
    /dev/null. Returns the child's pid.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    process = subprocess.Popen(
        [script_path],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
        close_fds=True,
    )
    log_deploy(
        f"{symbols.get('rocket', '🚀')} Started model pull in background with PID {process.pid}",
        "info",
        logger_to_use,
        app_settings,
    )
    return process.pid


def hand_off_model_pull(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> int:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    model_pull = app_settings.model_pull

    log_deploy(
        f"{symbols.get('step', '➡️')} Creating model pull script",
        "info",
        logger_to_use,
        app_settings,
    )
    write_config_file(
        model_pull.task_config_path,
        yaml.safe_dump(build_task_config(app_settings), sort_keys=False),
        app_settings,
        mode="600",
        current_logger=logger_to_use,
    )
    write_config_file(
        model_pull.script_path,
        render_launcher_script(app_settings),
        app_settings,
        mode="755",
        current_logger=logger_to_use,
    )

    pid = launch_detached(str(model_pull.script_path), app_settings, logger_to_use)
    log_deploy(
        f"{symbols.get('sparkles', '✨')} Deployment completed. Model pull of {model_pull.model_name} continues in the background (see {app_settings.logs.model_pull_log}).",
        "success",
        logger_to_use,
        app_settings,
    )
    return pid

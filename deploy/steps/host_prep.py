# deploy/steps/host_prep.py
# -*- coding: utf-8 -*-
"""
Host preparation: log files, output capture and package-manager tuning.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Optional

from common.command_utils import log_deploy
from common.debian.apt_manager import render_parallel_download_config
from common.file_utils import ensure_log_file, write_config_file
from common.system_utils import get_cpu_count
from deploy.config_models import AppSettings

module_logger = logging.getLogger(__name__)

# Held for the lifetime of the process so the tee keeps draining stdout.
_tee_process: Optional[subprocess.Popen] = None


def prepare_log_files(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """Create both log files world-writable so the agent and the task can use them."""
    logger_to_use = current_logger if current_logger else module_logger
    for log_path in (app_settings.logs.deploy_log, app_settings.logs.model_pull_log):
        ensure_log_file(
            log_path,
            app_settings.logs.file_mode,
            app_settings,
            current_logger=logger_to_use,
        )


def redirect_output_to_log(
    log_file: Path,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Duplicate this process's stdout and stderr into ``log_file`` through a
    ``tee -a`` child, so console output keeps flowing while the file fills.

    Returns:
        True if the redirection was installed by this call, False if it was
        already active.
    """
    global _tee_process
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols

    if _tee_process is not None and _tee_process.poll() is None:
        return False

    sys.stdout.flush()
    sys.stderr.flush()
    _tee_process = subprocess.Popen(
        ["tee", "-a", str(log_file)],
        stdin=subprocess.PIPE,
    )
    os.dup2(_tee_process.stdin.fileno(), sys.stdout.fileno())
    os.dup2(_tee_process.stdin.fileno(), sys.stderr.fileno())
    log_deploy(
        f"{symbols.get('info', 'ℹ️')} Output is now also written to {log_file}",
        "info",
        logger_to_use,
        app_settings,
    )
    return True


def render_makepkg_config(cores: int) -> str:
    return f'MAKEFLAGS="-j{cores}"\n'


def configure_parallelism(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> int:
    """Write apt download tuning and build parallelism. Returns the core count."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols

    cores = get_cpu_count(app_settings, logger_to_use)
    log_deploy(
        f"{symbols.get('gear', '⚙️')} Detected {cores} CPU core(s).",
        "info",
        logger_to_use,
        app_settings,
    )
    write_config_file(
        app_settings.apt.parallel_config_path,
        render_parallel_download_config(app_settings.apt),
        app_settings,
        current_logger=logger_to_use,
    )
    write_config_file(
        app_settings.apt.makepkg_config_path,
        render_makepkg_config(cores),
        app_settings,
        current_logger=logger_to_use,
    )
    return cores


def prepare_host(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    log_deploy(
        f"{symbols.get('step', '➡️')} Preparing host...",
        "info",
        logger_to_use,
        app_settings,
    )
    prepare_log_files(app_settings, logger_to_use)
    redirect_output_to_log(
        app_settings.logs.deploy_log, app_settings, logger_to_use
    )
    configure_parallelism(app_settings, logger_to_use)
    log_deploy(
        f"{symbols.get('success', '✅')} Host preparation complete.",
        "success",
        logger_to_use,
        app_settings,
    )

# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the host bootstrap.

This module includes functions for system operations like reloading and
restarting systemd units and determining the OS codename, CPU
architecture and core count.
"""

import logging
import subprocess
from os import cpu_count
from pathlib import Path
from typing import Dict, Optional

from common.command_utils import (
    log_deploy,
    run_command,
    run_elevated_command,
)
from deploy.config_models import (
    SYMBOLS_DEFAULT,
    AppSettings,
)

module_logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")


def get_cpu_count(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> int:
    """
    Number of online processors, never less than 1.
    """
    logger_to_use = current_logger if current_logger else module_logger
    cores = cpu_count()
    if not cores:
        log_deploy(
            f"{SYMBOLS_DEFAULT.get('warning', '!')} Could not determine CPU count. Assuming 1.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return 1
    return cores


def parse_os_release(content: str) -> Dict[str, str]:
    """Parse the KEY=value lines of an os-release file."""
    values: Dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def get_os_codename(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
    os_release_path: Path = OS_RELEASE_PATH,
) -> Optional[str]:
    """
    Get the distribution codename (e.g. 'noble', 'bookworm').

    Reads VERSION_CODENAME (then UBUNTU_CODENAME) from os-release and falls
    back to ``lsb_release -cs``.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols_to_use = (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )

    try:
        release = parse_os_release(os_release_path.read_text(encoding="utf-8"))
        codename = release.get("VERSION_CODENAME") or release.get(
            "UBUNTU_CODENAME"
        )
        if codename:
            return codename
    except OSError as e:
        log_deploy(
            f"{symbols_to_use.get('warning', '!')} Could not read {os_release_path}: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )

    try:
        result: subprocess.CompletedProcess = run_command(
            ["lsb_release", "-cs"],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=logger_to_use,
        )
        stdout_val: Optional[str] = result.stdout
        if stdout_val is not None and stdout_val.strip():
            return stdout_val.strip()
        return None
    except FileNotFoundError:
        log_deploy(
            f"{symbols_to_use.get('warning', '!')} lsb_release command not found. Cannot determine OS codename.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None
    except subprocess.CalledProcessError:
        # run_command already logged the failure.
        return None


def get_dpkg_architecture(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> str:
    """
    Debian architecture name of the host (e.g. 'amd64').
    """
    result = run_command(
        ["dpkg", "--print-architecture"],
        app_settings,
        capture_output=True,
        check=True,
        current_logger=current_logger,
    )
    return result.stdout.strip()


def systemd_reload(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """
    Reload the systemd daemon. Failures propagate to the caller.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    log_deploy(
        f"{symbols.get('gear', '⚙️')} Reloading systemd daemon...",
        "info",
        logger_to_use,
        app_settings,
    )
    run_elevated_command(
        ["systemctl", "daemon-reload"],
        app_settings,
        current_logger=logger_to_use,
    )
    log_deploy(
        f"{symbols.get('success', '✅')} Systemd daemon reloaded.",
        "success",
        logger_to_use,
        app_settings,
    )


def systemctl(
    action: str,
    unit: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Run ``systemctl <action> <unit>`` with root privileges.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    log_deploy(
        f"{symbols.get('gear', '⚙️')} systemctl {action} {unit}",
        "info",
        logger_to_use,
        app_settings,
    )
    run_elevated_command(
        ["systemctl", action, unit],
        app_settings,
        current_logger=logger_to_use,
    )

# deploy/steps/monitoring_agent.py
# -*- coding: utf-8 -*-
"""
Installs and starts the CloudWatch agent so that both bootstrap log files are
shipped to the remote log group while the rest of the bootstrap runs.
"""

import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from common.command_utils import (
    check_package_installed,
    log_deploy,
    run_elevated_command,
)
from common.file_utils import write_config_file
from common.system_utils import systemctl
from deploy.config_models import AppSettings
from deploy.errors import BootstrapError

module_logger = logging.getLogger(__name__)


def build_agent_config(app_settings: AppSettings) -> Dict[str, Any]:
    """Agent configuration mapping each local log file to its stream."""
    telemetry = app_settings.telemetry
    return {
        "agent": {"run_as_user": telemetry.run_as_user},
        "logs": {
            "logs_collected": {
                "files": {
                    "collect_list": [
                        {
                            "file_path": str(app_settings.logs.deploy_log),
                            "log_group_name": telemetry.log_group_name,
                            "log_stream_name": telemetry.app_log_stream,
                        },
                        {
                            "file_path": str(app_settings.logs.model_pull_log),
                            "log_group_name": telemetry.log_group_name,
                            "log_stream_name": telemetry.model_pull_stream,
                        },
                    ]
                }
            }
        },
    }


def download_agent_package(
    url: str,
    download_path: Path,
    timeout: int,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Stream the agent package to ``download_path``.

    Raises:
        requests.exceptions.RequestException: On HTTP or connection errors.
    """
    logger_to_use = current_logger if current_logger else module_logger
    logger_to_use.info(f"Downloading agent package from {url}")
    download_path.parent.mkdir(parents=True, exist_ok=True)
    response = requests.get(url, stream=True, timeout=timeout)
    response.raise_for_status()
    with open(download_path, "wb") as f:
        for chunk in response.iter_content(chunk_size=8192):
            if chunk:
                f.write(chunk)
    logger_to_use.info(f"Agent package downloaded to: {download_path}")
    return download_path


def install_agent_package(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> bool:
    """
    Install the agent .deb unless dpkg already reports it installed.

    Returns:
        True if the package was installed by this call.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    telemetry = app_settings.telemetry

    if check_package_installed(
        telemetry.agent_package_name, app_settings, logger_to_use
    ):
        log_deploy(
            f"{symbols.get('info', 'ℹ️')} {telemetry.agent_package_name} is already installed. Skipping download.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    work_dir = Path(tempfile.mkdtemp(prefix="llm_bootstrap_agent_"))
    try:
        package_path = download_agent_package(
            telemetry.agent_package_url,
            work_dir / f"{telemetry.agent_package_name}.deb",
            telemetry.download_timeout,
            logger_to_use,
        )
        run_elevated_command(
            ["dpkg", "-i", str(package_path)],
            app_settings,
            current_logger=logger_to_use,
        )
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)

    log_deploy(
        f"{symbols.get('success', '✅')} {telemetry.agent_package_name} installed.",
        "success",
        logger_to_use,
        app_settings,
    )
    return True


def install_monitoring_agent(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    telemetry = app_settings.telemetry

    missing = [
        name
        for name in ("log_group_name", "app_log_stream", "model_pull_stream")
        if not getattr(telemetry, name)
    ]
    if missing:
        raise BootstrapError(
            f"Telemetry destination not configured: {', '.join(missing)}",
            step_tag="MONITORING_AGENT",
        )

    log_deploy(
        f"{symbols.get('step', '➡️')} Installing CloudWatch agent...",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        install_agent_package(app_settings, logger_to_use)
    except requests.exceptions.RequestException as e:
        raise BootstrapError(
            f"Failed to download the CloudWatch agent: {e}",
            step_tag="MONITORING_AGENT",
            original_error=e,
        ) from e

    log_deploy(
        f"{symbols.get('gear', '⚙️')} Configuring CloudWatch agent...",
        "info",
        logger_to_use,
        app_settings,
    )
    write_config_file(
        telemetry.config_path,
        json.dumps(build_agent_config(app_settings), indent=2) + "\n",
        app_settings,
        current_logger=logger_to_use,
    )
    run_elevated_command(
        [
            str(telemetry.ctl_path),
            "-a",
            "fetch-config",
            "-m",
            "ec2",
            "-s",
            "-c",
            f"file:{telemetry.config_path}",
        ],
        app_settings,
        current_logger=logger_to_use,
    )
    systemctl("start", telemetry.agent_service, app_settings, logger_to_use)
    log_deploy(
        f"{symbols.get('success', '✅')} CloudWatch agent running.",
        "success",
        logger_to_use,
        app_settings,
    )

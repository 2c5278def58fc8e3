# deploy/steps/docker_runtime.py
# -*- coding: utf-8 -*-
"""
Configures the Docker daemon, restarts it once and waits for it to answer.
"""

import json
import logging
import subprocess
from typing import Any, Dict, Optional

from common.command_utils import log_deploy, run_command, run_elevated_command
from common.file_utils import write_config_file
from common.retry_utils import wait_until
from common.system_utils import systemctl, systemd_reload
from deploy.config_models import AppSettings, DockerSettings
from deploy.errors import DaemonNotReadyError

module_logger = logging.getLogger(__name__)


def build_daemon_config(docker: DockerSettings) -> Dict[str, Any]:
    return {
        "log-driver": docker.log_driver,
        "log-opts": {
            "max-size": docker.log_max_size,
            "max-file": docker.log_max_file,
        },
        "storage-driver": docker.storage_driver,
        "metrics-addr": docker.metrics_addr,
        "experimental": docker.experimental,
    }


def docker_is_ready(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> bool:
    """True when ``docker info`` exits 0 within the probe timeout."""
    try:
        result = run_command(
            [app_settings.container_runtime_command, "info"],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=current_logger,
            timeout=app_settings.docker.info_timeout,
            log_level="debug",
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def configure_docker_runtime(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """
    Writes daemon.json, grants the service user access to the docker group,
    restarts the daemon and polls until it is ready.

    Raises:
        DaemonNotReadyError: If ``docker info`` does not succeed within the
            configured readiness timeout.
        subprocess.CalledProcessError: If a privileged command fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    docker = app_settings.docker
    user = app_settings.service_user

    log_deploy(
        f"{symbols.get('gear', '⚙️')} Configuring Docker daemon...",
        "info",
        logger_to_use,
        app_settings,
    )
    write_config_file(
        docker.daemon_config_path,
        json.dumps(build_daemon_config(docker), indent=4) + "\n",
        app_settings,
        current_logger=logger_to_use,
    )

    log_deploy(
        f"{symbols.get('gear', '⚙️')} Adding user {user} to 'docker' group...",
        "info",
        logger_to_use,
        app_settings,
    )
    run_elevated_command(
        ["usermod", "-aG", "docker", user],
        app_settings,
        current_logger=logger_to_use,
    )

    systemd_reload(app_settings, logger_to_use)
    systemctl("restart", "docker", app_settings, logger_to_use)

    if not wait_until(
        lambda: docker_is_ready(app_settings, logger_to_use),
        docker.ready_timeout,
        docker.ready_interval,
        "Docker to be ready",
        app_settings=app_settings,
        current_logger=logger_to_use,
    ):
        raise DaemonNotReadyError(
            f"Docker did not become ready within {docker.ready_timeout:g}s",
            step_tag="DOCKER_RUNTIME",
        )
    log_deploy(
        f"{symbols.get('success', '✅')} Docker daemon is ready.",
        "success",
        logger_to_use,
        app_settings,
    )

    try:
        run_elevated_command(
            ["chmod", docker.socket_mode, str(docker.socket_path)],
            app_settings,
            current_logger=logger_to_use,
        )
    except subprocess.CalledProcessError:
        log_deploy(
            f"{symbols.get('error', '❌')} Could not set permissions on {docker.socket_path}.",
            "error",
            logger_to_use,
            app_settings,
        )
        raise

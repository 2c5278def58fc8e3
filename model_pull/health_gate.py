# model_pull/health_gate.py
# -*- coding: utf-8 -*-
"""
Waits until the model server container is running and its API answers.

The API is only probed once the container runtime reports the container as
running, so the two failure reasons (container absent/stopped, API not yet
serving) are logged separately.
"""

import logging
import subprocess
import time
from typing import Optional

import requests

from common.command_utils import log_deploy, run_command
from deploy.config_models import AppSettings
from model_pull.errors import HealthGateTimeoutError

module_logger = logging.getLogger(__name__)


def container_is_running(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> bool:
    """True when ``docker container inspect`` reports State.Running as true."""
    container = app_settings.model_pull.container_name
    try:
        result = run_command(
            [
                app_settings.container_runtime_command,
                "container",
                "inspect",
                container,
                "--format",
                "{{.State.Running}}",
            ],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=current_logger,
            timeout=app_settings.model_pull.probe_timeout,
            log_level="debug",
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


def api_is_healthy(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> bool:
    """True when the health endpoint answers with a 2xx status."""
    logger_to_use = current_logger if current_logger else module_logger
    model_pull = app_settings.model_pull
    try:
        response = requests.get(
            model_pull.health_url, timeout=model_pull.probe_timeout
        )
    except requests.exceptions.RequestException as e:
        logger_to_use.debug(f"Health probe of {model_pull.health_url} failed: {e}")
        return False
    return 200 <= response.status_code < 300


def wait_for_container(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> int:
    """
    Poll the container and its API up to ``health_max_attempts`` times,
    sleeping ``health_interval_seconds`` between attempts.

    Returns:
        The attempt on which the API answered.

    Raises:
        HealthGateTimeoutError: If the last attempt is still not healthy.
    """
    logger_to_use = current_logger if current_logger else module_logger
    model_pull = app_settings.model_pull
    container = model_pull.container_name
    max_attempts = model_pull.health_max_attempts

    log_deploy(
        f"Checking status of container: {container}",
        "info",
        logger_to_use,
        app_settings,
    )
    for attempt in range(1, max_attempts + 1):
        if container_is_running(app_settings, logger_to_use):
            if api_is_healthy(app_settings, logger_to_use):
                log_deploy(
                    "Ollama API is responding",
                    "success",
                    logger_to_use,
                    app_settings,
                )
                return attempt
            log_deploy(
                f"Container {container} is running, waiting for Ollama API to be ready...",
                "info",
                logger_to_use,
                app_settings,
            )
        else:
            log_deploy(
                f"Attempt {attempt}/{max_attempts}: Container {container} not ready yet",
                "info",
                logger_to_use,
                app_settings,
            )
        if attempt < max_attempts:
            time.sleep(model_pull.health_interval_seconds)

    log_deploy(
        f"ERROR: Container {container} failed to start after {max_attempts} attempts",
        "error",
        logger_to_use,
        app_settings,
    )
    raise HealthGateTimeoutError(container, max_attempts)

# deploy/steps/workload.py
# -*- coding: utf-8 -*-
"""
Starts the container stack as the service user.
"""

import logging
from typing import Optional

from common.command_utils import run_as_user
from common.retry_utils import RetryExhaustedError, retry_with_fixed_backoff
from deploy.config_models import AppSettings
from deploy.errors import WorkloadStartError
from deploy.steps.source_checkout import checkout_path

module_logger = logging.getLogger(__name__)


def start_workload(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> int:
    """
    Run ``docker compose up -d`` in the checkout with a bounded, fixed-backoff
    retry.

    Returns:
        The attempt number that succeeded.

    Raises:
        WorkloadStartError: After the last allowed attempt fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    workload = app_settings.workload
    project_dir = checkout_path(app_settings)

    def compose_up() -> None:
        run_as_user(
            app_settings.service_user,
            workload.compose_command,
            app_settings,
            current_logger=logger_to_use,
            cwd=str(project_dir),
        )

    try:
        return retry_with_fixed_backoff(
            compose_up,
            workload.max_attempts,
            workload.backoff_seconds,
            "Docker compose",
            app_settings=app_settings,
            current_logger=logger_to_use,
            attempt_message=lambda n, total: f"Docker compose attempt {n} of {total}",
            failure_message=lambda n, total: f"Docker compose attempt {n} failed",
            success_message="Docker compose successfully started",
        )
    except RetryExhaustedError as e:
        logger_to_use.error(
            f"ERROR: Failed to start Docker compose after {e.attempts} attempts"
        )
        raise WorkloadStartError(
            str(e), step_tag="WORKLOAD", original_error=e
        ) from e

# model_pull/acquisition.py
# -*- coding: utf-8 -*-
"""
Pulls the model inside the running model server container.
"""

import logging
from typing import Optional

from common.command_utils import run_command
from common.retry_utils import RetryExhaustedError, retry_with_fixed_backoff
from deploy.config_models import AppSettings
from model_pull.errors import ModelPullError

module_logger = logging.getLogger(__name__)


def pull_model(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> int:
    """
    Run ``docker exec -i <container> ollama pull <model>`` with a bounded
    fixed-backoff retry.

    Returns:
        The attempt number that succeeded.

    Raises:
        ModelPullError: After ``pull_max_attempts`` failed attempts.
    """
    logger_to_use = current_logger if current_logger else module_logger
    model_pull = app_settings.model_pull
    model = model_pull.model_name

    def pull_once() -> None:
        run_command(
            [
                app_settings.container_runtime_command,
                "exec",
                "-i",
                model_pull.container_name,
                "ollama",
                "pull",
                model,
            ],
            app_settings,
            capture_output=True,
            current_logger=logger_to_use,
        )

    try:
        return retry_with_fixed_backoff(
            pull_once,
            model_pull.pull_max_attempts,
            model_pull.pull_backoff_seconds,
            f"Model pull of {model}",
            app_settings=app_settings,
            current_logger=logger_to_use,
            attempt_message=lambda n, total: f"Starting model pull attempt {n}: {model}",
            failure_message=lambda n, total: f"Pull attempt {n} failed",
            success_message=f"Successfully pulled model: {model}",
        )
    except RetryExhaustedError as e:
        logger_to_use.error(
            f"ERROR: Failed to pull model after {e.attempts} attempts"
        )
        raise ModelPullError(model, e.attempts) from e

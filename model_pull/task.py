# model_pull/task.py
# -*- coding: utf-8 -*-
"""
Background model pull task.

Started detached by the bootstrap's final step. Waits for the model server
to become healthy, then pulls the configured model. Progress goes to the
model pull log (shipped by the telemetry agent) and to the status file.
Exit code 0 means the model is available, 1 means it is not.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from common.core_utils import setup_logging
from deploy.config_loader import load_app_settings
from deploy.config_models import PULL_TASK_CONFIG_DEFAULT, AppSettings
from model_pull.acquisition import pull_model
from model_pull.errors import HealthGateTimeoutError, ModelPullError
from model_pull.health_gate import wait_for_container
from model_pull.status import (
    STATE_FAILED,
    STATE_PULLING,
    STATE_SUCCEEDED,
    STATE_WAITING_FOR_HEALTH,
    ModelPullStatus,
    write_status,
)

logger = logging.getLogger(__name__)

BANNER = "=" * 65


def _record(
    app_settings: AppSettings, state: str, detail: str = ""
) -> None:
    write_status(
        ModelPullStatus(
            state=state,
            model=app_settings.model_pull.model_name,
            detail=detail,
        ),
        app_settings.model_pull.status_file,
        current_logger=logger,
    )


def run_model_pull(app_settings: AppSettings) -> int:
    """Health gate, then acquisition. Returns the process exit code."""
    logger.info(BANNER)
    logger.info(f"Starting model pull script with PID {os.getpid()}")
    logger.info(BANNER)

    _record(app_settings, STATE_WAITING_FOR_HEALTH)
    try:
        wait_for_container(app_settings, logger)
    except HealthGateTimeoutError as e:
        logger.error(
            f"ERROR: {app_settings.model_pull.container_name} container not ready. Exiting."
        )
        _record(app_settings, STATE_FAILED, str(e))
        return 1

    _record(app_settings, STATE_PULLING)
    try:
        pull_model(app_settings, logger)
    except ModelPullError as e:
        _record(app_settings, STATE_FAILED, str(e))
        return 1

    _record(app_settings, STATE_SUCCEEDED)
    logger.info("Model pull script completed")
    return 0


def main(cli_args_list: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Wait for the model server and pull the configured model."
    )
    parser.add_argument(
        "--config-file",
        default=str(PULL_TASK_CONFIG_DEFAULT),
        help="Settings written by the bootstrap hand-off step.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    parsed_cli_args = parser.parse_args(
        cli_args_list if cli_args_list is not None else sys.argv[1:]
    )

    try:
        app_config = load_app_settings(None, parsed_cli_args.config_file)
    except SystemExit as e:
        print(
            f"CRITICAL: Failed to load or validate application configuration: {e}",
            file=sys.stderr,
        )
        return 1

    setup_logging(
        log_level=(
            logging.DEBUG
            if parsed_cli_args.verbose
            else logging.getLevelName(app_config.logs.level)
        ),
        log_file=str(app_config.logs.model_pull_log),
        log_to_console=True,
        log_prefix=app_config.log_prefix,
    )
    return run_model_pull(app_config)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

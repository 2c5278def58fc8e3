# deploy/step_executor.py
# -*- coding: utf-8 -*-
"""
Provides functionality to execute individual bootstrap steps.

A step already recorded in the state file is skipped unless it is marked
rerunnable or a forced re-run was requested. A step that runs is marked
completed only when it succeeds.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from common.command_utils import log_deploy
from deploy.config_models import AppSettings
from deploy.state_manager import is_step_completed, mark_step_completed

module_logger = logging.getLogger(__name__)

StepFunction = Callable[[AppSettings, Optional[logging.Logger]], Any]


@dataclass(frozen=True)
class ProvisioningStep:
    """One idempotent action of the bootstrap sequence."""

    tag: str
    description: str
    func: StepFunction
    fatal: bool = True
    # Steps whose effect does not persist across reboots, or that are cheap
    # and idempotent, run on every invocation.
    rerunnable: bool = False


def execute_step(
    step_tag: str,
    step_description: str,
    step_function: StepFunction,
    app_settings: AppSettings,
    current_logger_instance: Optional[logging.Logger] = None,
    force_rerun: bool = False,
    rerunnable: bool = False,
    state_file: Optional[Path] = None,
) -> bool:
    """
    Execute a single bootstrap step.

    Args:
        step_tag: A unique string identifier for the step.
        step_description: A human-readable description of the step.
        step_function: The function to call to execute the step.
                       Expected signature: (app_settings, current_logger) -> Any
                       Returning False signals failure. Any other return value
                       is success. An exception is always a failure.
        app_settings: The application settings object.
        current_logger_instance: The logger instance to use.
        force_rerun: Run the step even if it is recorded as completed.
        rerunnable: The step runs on every invocation.
        state_file: Override of the state file location.

    Returns:
        True if the step was successfully executed or skipped.
        False if the step execution failed.
    """
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    symbols = app_settings.symbols

    if (
        not force_rerun
        and not rerunnable
        and is_step_completed(
            step_tag,
            app_settings=app_settings,
            current_logger=logger_to_use,
            state_file=state_file,
        )
    ):
        log_deploy(
            f"{symbols.get('info', 'ℹ️')} Step '{step_description}' ({step_tag}) is already marked as completed. Skipping.",
            "info",
            logger_to_use,
            app_settings,
        )
        return True

    log_deploy(
        f"--- {symbols.get('step', '➡️')} Executing: {step_description} ({step_tag}) ---",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        step_result = step_function(app_settings, logger_to_use)
    except Exception as e:
        log_deploy(
            f"{symbols.get('error', '❌')} FAILED: {step_description} ({step_tag})",
            "error",
            logger_to_use,
            app_settings,
        )
        log_deploy(
            f"   Error details: {str(e)}",
            "error",
            logger_to_use,
            app_settings,
            exc_info=True,
        )
        return False

    if step_result is False:
        log_deploy(
            f"{symbols.get('error', '❌')} Step function returned False: {step_description} ({step_tag})",
            "error",
            logger_to_use,
            app_settings,
        )
        return False

    mark_step_completed(
        step_tag,
        app_settings=app_settings,
        current_logger=logger_to_use,
        state_file=state_file,
    )
    log_deploy(
        f"--- {symbols.get('success', '✅')} Successfully completed: {step_description} ({step_tag}) ---",
        "success",
        logger_to_use,
        app_settings,
    )
    return True

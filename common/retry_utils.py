# common/retry_utils.py
# -*- coding: utf-8 -*-
"""
Bounded retry and polling loops with fixed intervals.

Backoff is a plain wall-clock sleep between attempts: no exponential growth,
no jitter. Neither helper sleeps after the final attempt.
"""

import logging
import subprocess
import time
from typing import Callable, Optional

from common.command_utils import log_deploy
from deploy.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)


class RetryExhaustedError(RuntimeError):
    """Raised when every allowed attempt of an action has failed."""

    def __init__(self, description: str, attempts: int):
        super().__init__(
            f"{description} failed after {attempts} attempts"
        )
        self.description = description
        self.attempts = attempts


def retry_with_fixed_backoff(
    action: Callable[[], object],
    max_attempts: int,
    backoff_seconds: float,
    description: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
    attempt_message: Optional[Callable[[int, int], str]] = None,
    failure_message: Optional[Callable[[int, int], str]] = None,
    success_message: Optional[str] = None,
) -> int:
    """
    Calls ``action`` until it succeeds or ``max_attempts`` calls have failed.

    An attempt fails when ``action`` returns False or raises
    ``subprocess.CalledProcessError``, ``OSError`` or ``RuntimeError``.
    Between failed attempts the loop sleeps ``backoff_seconds``.

    Args:
        action: Zero-argument callable performing one attempt.
        max_attempts: Upper bound on calls to ``action``.
        backoff_seconds: Fixed sleep between attempts.
        description: Human-readable name used in log lines and the error.
        app_settings: Settings providing log symbols.
        current_logger: Logger for attempt/failure lines.
        attempt_message: Builds the line logged before each attempt from
            (attempt, max_attempts).
        failure_message: Builds the line logged after each failed attempt.
        success_message: Line logged once the action succeeds.

    Returns:
        The 1-based number of the attempt that succeeded.

    Raises:
        RetryExhaustedError: After exactly ``max_attempts`` failed attempts.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )

    for attempt in range(1, max_attempts + 1):
        log_deploy(
            attempt_message(attempt, max_attempts)
            if attempt_message
            else f"{description} attempt {attempt} of {max_attempts}",
            "info",
            logger_to_use,
            app_settings,
        )
        try:
            succeeded = action() is not False
        except (subprocess.CalledProcessError, OSError, RuntimeError) as e:
            log_deploy(
                f"   {symbols.get('warning', '!')} {description} raised: {e}",
                "debug",
                logger_to_use,
                app_settings,
            )
            succeeded = False

        if succeeded:
            log_deploy(
                success_message or f"{description} succeeded",
                "success",
                logger_to_use,
                app_settings,
            )
            return attempt

        log_deploy(
            failure_message(attempt, max_attempts)
            if failure_message
            else f"{description} attempt {attempt} failed",
            "warning",
            logger_to_use,
            app_settings,
        )
        if attempt < max_attempts:
            time.sleep(backoff_seconds)

    raise RetryExhaustedError(description, max_attempts)


def wait_until(
    check: Callable[[], bool],
    timeout_seconds: float,
    interval_seconds: float,
    description: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Polls ``check`` every ``interval_seconds`` until it returns True or the
    ``timeout_seconds`` deadline (monotonic clock) passes.

    Returns:
        True if ``check`` succeeded before the deadline, False otherwise.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )
    log_deploy(
        f"{symbols.get('hourglass', '⏳')} Waiting up to {timeout_seconds:g}s for {description}...",
        "info",
        logger_to_use,
        app_settings,
    )
    deadline = time.monotonic() + timeout_seconds
    while True:
        if check():
            return True
        if time.monotonic() + interval_seconds > deadline:
            return False
        time.sleep(interval_seconds)

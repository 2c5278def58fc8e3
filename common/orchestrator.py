# common/orchestrator.py
# -*- coding: utf-8 -*-
"""
Centralized orchestrator for managing and executing sequences of tasks.
"""

import logging
import sys
from typing import Any, Callable, Dict, List, Optional


class Orchestrator:
    """Runs a series of defined tasks in strict order."""

    def __init__(
        self,
        app_settings: Any,
        orchestrator_logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the Orchestrator.

        Args:
            app_settings: The application settings object.
            orchestrator_logger: An optional logger instance.
        """
        self.app_settings = app_settings
        self.logger = orchestrator_logger or logging.getLogger(__name__)
        self.tasks: List[Dict[str, Any]] = []

    def add_task(
        self,
        name: str,
        func: Callable,
        args: Optional[List[Any]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        fatal: bool = True,
    ):
        """
        Adds a task to the execution list.

        Args:
            name: A human-readable name for the task.
            func: The function to execute for this task. It receives
                ``app_settings`` as a keyword argument. Returning False or
                raising marks the task as failed.
            args: A list of positional arguments to pass to the function.
            kwargs: A dictionary of keyword arguments to pass to the function.
            fatal: If True, a failure in this task halts the process with
                exit code 1.
        """
        self.tasks.append({
            "name": name,
            "func": func,
            "args": args or [],
            "kwargs": kwargs or {},
            "fatal": fatal,
        })
        self.logger.debug(f"Task '{name}' added to the queue.")

    def _handle_failure(self, task: Dict[str, Any]) -> None:
        if task.get("fatal", True):
            self.logger.error(
                "A fatal error occurred. Halting orchestration and exiting application."
            )
            sys.exit(1)
        self.logger.warning(
            f"Task '{task['name']}' was non-fatal. Continuing orchestration."
        )

    def run(self) -> bool:
        """
        Executes all added tasks in sequence.

        Returns:
            True if all tasks completed successfully, False if a non-fatal
            task failed.
        """
        self.logger.info("Orchestration started.")
        all_succeeded = True
        for i, task in enumerate(self.tasks):
            task_name = task["name"]
            self.logger.info(
                f"--- Stage {i + 1}: Running task '{task_name}' ---"
            )

            try:
                task["kwargs"]["app_settings"] = self.app_settings
                result = task["func"](*task["args"], **task["kwargs"])
            except Exception as e:
                self.logger.critical(
                    f"🔥 Task '{task_name}' failed: {e}", exc_info=True
                )
                all_succeeded = False
                self._handle_failure(task)
                continue

            if result is False:
                self.logger.critical(f"🔥 Task '{task_name}' failed.")
                all_succeeded = False
                self._handle_failure(task)
                continue

            self.logger.info(f"✅ Task '{task_name}' completed successfully.")

        if all_succeeded:
            self.logger.info("✨ Orchestration finished successfully.")
        return all_succeeded

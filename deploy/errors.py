# deploy/errors.py
# -*- coding: utf-8 -*-
"""
Exceptions raised by bootstrap steps.
"""

from typing import Optional


class BootstrapError(Exception):
    """Custom exception for bootstrap step failures."""

    def __init__(
        self,
        message: str,
        step_tag: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.step_tag = step_tag
        self.original_error = original_error
        super().__init__(message)


class MissingCredentialError(BootstrapError):
    """The source repository access credential was not supplied."""


class DaemonNotReadyError(BootstrapError):
    """The container runtime did not report ready before the timeout."""


class WorkloadStartError(BootstrapError):
    """The container stack failed to start within the allowed attempts."""

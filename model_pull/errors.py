# model_pull/errors.py
# -*- coding: utf-8 -*-
"""
Exceptions raised by the background model pull task.
"""


class ModelPullTaskError(Exception):
    """Base class for model pull task failures."""


class HealthGateTimeoutError(ModelPullTaskError):
    """The model server never became healthy within the allowed attempts."""

    def __init__(self, container_name: str, attempts: int):
        super().__init__(
            f"Container {container_name} failed to start after {attempts} attempts"
        )
        self.container_name = container_name
        self.attempts = attempts


class ModelPullError(ModelPullTaskError):
    """Every model pull attempt failed."""

    def __init__(self, model_name: str, attempts: int):
        super().__init__(
            f"Failed to pull model {model_name} after {attempts} attempts"
        )
        self.model_name = model_name
        self.attempts = attempts

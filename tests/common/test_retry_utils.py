# tests/common/test_retry_utils.py
# -*- coding: utf-8 -*-
"""
Tests for the fixed-backoff retry loop and the deadline poller.
"""

import subprocess
from unittest.mock import MagicMock

import pytest

from common.retry_utils import (
    RetryExhaustedError,
    retry_with_fixed_backoff,
    wait_until,
)


def test_retry_succeeds_first_time_without_sleeping(mocker):
    mock_sleep = mocker.patch("common.retry_utils.time.sleep")
    action = MagicMock(return_value=None)

    assert retry_with_fixed_backoff(action, 3, 30, "Docker compose") == 1
    action.assert_called_once()
    mock_sleep.assert_not_called()


def test_retry_fail_fail_succeed(mocker):
    mock_sleep = mocker.patch("common.retry_utils.time.sleep")
    action = MagicMock(
        side_effect=[
            subprocess.CalledProcessError(1, "docker"),
            False,
            "ok",
        ]
    )

    assert retry_with_fixed_backoff(action, 3, 60, "Model pull") == 3
    assert action.call_count == 3
    assert [c.args[0] for c in mock_sleep.call_args_list] == [60, 60]


def test_retry_exhaustion_uses_exactly_max_attempts(mocker):
    mock_sleep = mocker.patch("common.retry_utils.time.sleep")
    action = MagicMock(side_effect=subprocess.CalledProcessError(1, "docker"))

    with pytest.raises(RetryExhaustedError) as excinfo:
        retry_with_fixed_backoff(action, 3, 30, "Docker compose")

    assert excinfo.value.attempts == 3
    assert action.call_count == 3
    # No sleep after the final attempt.
    assert sum(c.args[0] for c in mock_sleep.call_args_list) == (3 - 1) * 30


def test_retry_custom_messages(mocker, caplog):
    mocker.patch("common.retry_utils.time.sleep")
    action = MagicMock(side_effect=[False, True])

    with caplog.at_level("INFO"):
        retry_with_fixed_backoff(
            action,
            3,
            1,
            "Pull",
            attempt_message=lambda n, total: f"try {n}/{total}",
            failure_message=lambda n, total: f"Pull attempt {n} failed",
            success_message="pulled",
        )

    messages = [r.getMessage() for r in caplog.records]
    assert messages == ["try 1/3", "Pull attempt 1 failed", "try 2/3", "pulled"]


def test_retry_does_not_swallow_unexpected_errors(mocker):
    mocker.patch("common.retry_utils.time.sleep")
    action = MagicMock(side_effect=KeyError("bug"))
    with pytest.raises(KeyError):
        retry_with_fixed_backoff(action, 3, 1, "Anything")
    action.assert_called_once()


def test_wait_until_returns_true_when_check_passes(mocker):
    mock_sleep = mocker.patch("common.retry_utils.time.sleep")
    mocker.patch("common.retry_utils.time.monotonic", side_effect=[0, 0, 1, 2])
    check = MagicMock(side_effect=[False, False, True])

    assert wait_until(check, 60, 1, "Docker") is True
    assert check.call_count == 3
    assert mock_sleep.call_count == 2


def test_wait_until_times_out(mocker):
    clock = {"now": 0.0}

    def fake_sleep(seconds):
        clock["now"] += seconds

    mocker.patch("common.retry_utils.time.sleep", side_effect=fake_sleep)
    mocker.patch("common.retry_utils.time.monotonic", side_effect=lambda: clock["now"])
    check = MagicMock(return_value=False)

    assert wait_until(check, 60, 1, "Docker") is False
    assert clock["now"] <= 60
    assert check.call_count == 61

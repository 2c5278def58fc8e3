import subprocess

import pytest

from model_pull.acquisition import pull_model
from model_pull.errors import ModelPullError


def test_pull_model_command(mocker, app_settings):
    mocker.patch("common.retry_utils.time.sleep")
    mock_run = mocker.patch("model_pull.acquisition.run_command")

    assert pull_model(app_settings) == 1

    assert mock_run.call_args.args[0] == [
        "docker",
        "exec",
        "-i",
        "ollama",
        "ollama",
        "pull",
        "deepseek-r1:671b",
    ]


def test_pull_fail_fail_succeed(mocker, app_settings, caplog):
    mock_sleep = mocker.patch("common.retry_utils.time.sleep")
    mocker.patch(
        "model_pull.acquisition.run_command",
        side_effect=[
            subprocess.CalledProcessError(1, "docker"),
            subprocess.CalledProcessError(1, "docker"),
            None,
        ],
    )

    with caplog.at_level("INFO"):
        assert pull_model(app_settings) == 3

    messages = [r.getMessage() for r in caplog.records]
    assert [m for m in messages if m.startswith("Pull attempt")] == [
        "Pull attempt 1 failed",
        "Pull attempt 2 failed",
    ]
    assert messages.count("Successfully pulled model: deepseek-r1:671b") == 1
    assert [c.args[0] for c in mock_sleep.call_args_list] == [60, 60]


def test_pull_exhaustion(mocker, app_settings):
    mock_sleep = mocker.patch("common.retry_utils.time.sleep")
    mock_run = mocker.patch(
        "model_pull.acquisition.run_command",
        side_effect=subprocess.CalledProcessError(1, "docker"),
    )

    with pytest.raises(ModelPullError) as excinfo:
        pull_model(app_settings)

    assert excinfo.value.attempts == 3
    assert mock_run.call_count == 3
    assert sum(c.args[0] for c in mock_sleep.call_args_list) == 2 * 60


def test_failed_attempt_stderr_reaches_log(mocker, app_settings, caplog):
    mocker.patch("common.retry_utils.time.sleep")
    mock_subprocess_run = mocker.patch(
        "common.command_utils.subprocess.run",
        side_effect=[
            subprocess.CalledProcessError(
                1,
                ["docker", "exec"],
                output="",
                stderr="Error: pull model manifest: file does not exist",
            ),
            mocker.MagicMock(returncode=0, stdout="success", stderr=""),
        ],
    )

    assert pull_model(app_settings) == 2

    assert mock_subprocess_run.call_args.kwargs["capture_output"] is True
    assert "stderr: Error: pull model manifest: file does not exist" in caplog.text

# -*- coding: utf-8 -*-
"""
End-to-end tests of the background task with the container runtime and the
health endpoint mocked out.
"""

import subprocess
from unittest.mock import MagicMock

import pytest
import yaml

from model_pull import task
from model_pull.errors import HealthGateTimeoutError
from model_pull.status import read_status


@pytest.fixture
def events(mocker):
    """Records polls, sleeps and pulls in the order they happen."""
    log = []
    mocker.patch(
        "model_pull.health_gate.time.sleep",
        side_effect=lambda s: log.append(("sleep", s)),
    )
    mocker.patch(
        "common.retry_utils.time.sleep",
        side_effect=lambda s: log.append(("sleep", s)),
    )
    return log


def _runtime(events, running_after, pull_results):
    """
    Fake ``run_command``: the container reports running from poll
    ``running_after + 1`` on; each ``ollama pull`` consumes one result.
    """
    polls = {"n": 0}
    pulls = iter(pull_results)

    def fake_run_command(command, *args, **kwargs):
        if command[1:3] == ["container", "inspect"]:
            polls["n"] += 1
            events.append(("poll", polls["n"]))
            running = polls["n"] > running_after
            return MagicMock(returncode=0, stdout="true\n" if running else "false\n")
        if command[1] == "exec":
            events.append(("pull", command[-1]))
            if next(pulls):
                return MagicMock(returncode=0)
            raise subprocess.CalledProcessError(1, command)
        raise AssertionError(f"unexpected command {command}")

    return fake_run_command


def test_pull_starts_right_after_gate(mocker, app_settings, events):
    mocker.patch(
        "model_pull.health_gate.run_command",
        side_effect=_runtime(events, running_after=5, pull_results=[]),
    )
    mocker.patch(
        "model_pull.acquisition.run_command",
        side_effect=_runtime(events, running_after=0, pull_results=[True]),
    )
    mock_get = mocker.patch(
        "model_pull.health_gate.requests.get",
        side_effect=[MagicMock(status_code=503)] * 3 + [MagicMock(status_code=200)],
    )

    assert task.run_model_pull(app_settings) == 0

    assert mock_get.call_count == 4
    assert events[-2:] == [("poll", 9), ("pull", "deepseek-r1:671b")]
    assert [e for e in events if e[0] == "sleep"] == [("sleep", 30)] * 8
    assert read_status(app_settings.model_pull.status_file).state == "succeeded"


def test_fail_fail_succeed_exits_zero(mocker, app_settings, events, caplog):
    mocker.patch("model_pull.health_gate.container_is_running", return_value=True)
    mocker.patch("model_pull.health_gate.api_is_healthy", return_value=True)
    mocker.patch(
        "model_pull.acquisition.run_command",
        side_effect=_runtime(events, running_after=0, pull_results=[False, False, True]),
    )

    with caplog.at_level("INFO"):
        assert task.run_model_pull(app_settings) == 0

    messages = [r.getMessage() for r in caplog.records]
    assert sum("Pull attempt" in m and "failed" in m for m in messages) == 2
    assert sum("Successfully pulled model: deepseek-r1:671b" in m for m in messages) == 1
    assert [e for e in events if e[0] == "sleep"] == [("sleep", 60)] * 2


def test_gate_timeout_never_pulls(mocker, app_settings):
    mocker.patch(
        "model_pull.task.wait_for_container",
        side_effect=HealthGateTimeoutError("ollama", 20),
    )
    mock_pull = mocker.patch("model_pull.task.pull_model")

    assert task.run_model_pull(app_settings) == 1

    mock_pull.assert_not_called()
    status = read_status(app_settings.model_pull.status_file)
    assert status.state == "failed"
    assert "after 20 attempts" in status.detail


def test_pull_exhaustion_exits_one(mocker, app_settings, events):
    mocker.patch("model_pull.task.wait_for_container", return_value=1)
    mocker.patch(
        "model_pull.acquisition.run_command",
        side_effect=_runtime(events, running_after=0, pull_results=[False] * 3),
    )

    assert task.run_model_pull(app_settings) == 1
    assert read_status(app_settings.model_pull.status_file).state == "failed"


def test_main_loads_handed_off_config(mocker, app_settings, tmp_path):
    config = tmp_path / "pull-model.yaml"
    config.write_text(
        yaml.safe_dump(
            {
                "logs": {"model_pull_log": str(tmp_path / "model-pull.log")},
                "model_pull": {
                    "model_name": "llama3:8b",
                    "status_file": str(tmp_path / "status.json"),
                },
            }
        ),
        encoding="utf-8",
    )
    mock_setup_logging = mocker.patch("model_pull.task.setup_logging")
    mock_run = mocker.patch("model_pull.task.run_model_pull", return_value=0)

    assert task.main(["--config-file", str(config)]) == 0

    settings = mock_run.call_args.args[0]
    assert settings.model_pull.model_name == "llama3:8b"
    assert mock_setup_logging.call_args.kwargs["log_file"] == str(tmp_path / "model-pull.log")


def test_main_config_error(mocker, tmp_path, capsys):
    config = tmp_path / "pull-model.yaml"
    config.write_text("model_pull:\n  pull_max_attempts: 0\n", encoding="utf-8")

    assert task.main(["--config-file", str(config)]) == 1
    assert "Failed to load or validate" in capsys.readouterr().err

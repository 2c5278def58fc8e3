from unittest.mock import MagicMock

import pytest

from deploy.state_manager import (
    initialize_state_system,
    mark_step_completed,
    view_completed_steps,
)
from deploy.step_executor import execute_step


@pytest.fixture
def state_file(app_settings, tmp_path):
    path = tmp_path / "progress_state.txt"
    initialize_state_system(app_settings, state_file=path)
    return path


def test_successful_step_is_marked(app_settings, state_file):
    step = MagicMock(return_value=None)

    assert execute_step("PACKAGES", "Install", step, app_settings, state_file=state_file)

    step.assert_called_once()
    assert view_completed_steps(app_settings, state_file=state_file) == ["PACKAGES"]


def test_completed_step_is_skipped(app_settings, state_file):
    mark_step_completed("PACKAGES", app_settings, state_file=state_file)
    step = MagicMock()

    assert execute_step("PACKAGES", "Install", step, app_settings, state_file=state_file)

    step.assert_not_called()


def test_force_rerun_runs_completed_step(app_settings, state_file):
    mark_step_completed("PACKAGES", app_settings, state_file=state_file)
    step = MagicMock(return_value=None)

    execute_step(
        "PACKAGES", "Install", step, app_settings, force_rerun=True, state_file=state_file
    )

    step.assert_called_once()


def test_rerunnable_step_always_runs(app_settings, state_file):
    mark_step_completed("WORKLOAD", app_settings, state_file=state_file)
    step = MagicMock(return_value=None)

    execute_step(
        "WORKLOAD", "Compose", step, app_settings, rerunnable=True, state_file=state_file
    )

    step.assert_called_once()


def test_raising_step_fails_and_is_not_marked(app_settings, state_file, caplog):
    step = MagicMock(side_effect=RuntimeError("boom"))

    assert not execute_step(
        "DOCKER_RUNTIME", "Docker", step, app_settings, state_file=state_file
    )

    assert view_completed_steps(app_settings, state_file=state_file) == []
    assert "FAILED: Docker (DOCKER_RUNTIME)" in caplog.text


def test_false_result_fails(app_settings, state_file):
    step = MagicMock(return_value=False)

    assert not execute_step("PACKAGES", "Install", step, app_settings, state_file=state_file)
    assert view_completed_steps(app_settings, state_file=state_file) == []

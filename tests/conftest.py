# tests/conftest.py
import pytest

from deploy.config_models import AppSettings

ENV_VARS = (
    "GITHUB_TOKEN",
    "LOG_GROUP_NAME",
    "APP_LOG_STREAM",
    "MODEL_PULL_STREAM",
    "MODEL_NAME",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep values substituted on a real host out of the settings under test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def app_settings(tmp_path):
    """Settings whose every written path lives under tmp_path."""
    settings = AppSettings()
    settings.logs.deploy_log = tmp_path / "deploy.log"
    settings.logs.model_pull_log = tmp_path / "model-pull.log"
    settings.apt.parallel_config_path = tmp_path / "80parallel-downloads"
    settings.apt.makepkg_config_path = tmp_path / "makepkg.conf"
    settings.apt.docker_keyring = tmp_path / "keyrings" / "docker.asc"
    settings.apt.docker_source_list = tmp_path / "docker.list"
    settings.docker.daemon_config_path = tmp_path / "daemon.json"
    settings.telemetry.agent_dir = tmp_path / "cwagent"
    settings.telemetry.log_group_name = "llm-host"
    settings.telemetry.app_log_stream = "deploy"
    settings.telemetry.model_pull_stream = "model-pull"
    settings.source.credential_file = tmp_path / ".github-token"
    settings.model_pull.script_path = tmp_path / "pull-model.sh"
    settings.model_pull.task_config_path = tmp_path / "pull-model.yaml"
    settings.model_pull.status_file = tmp_path / "model-pull-status.json"
    return settings

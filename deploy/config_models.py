# deploy/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the bootstrap and the
background model pull task, including defaults, type annotations and
descriptions. Values substituted by the provisioning layer (log group,
log streams, repository credential) arrive through environment variables,
the YAML config file or the command line.
"""

from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Default Static Values (can be overridden by config file/env/cli) ---
LOG_PREFIX_DEFAULT: str = "[LLM-BOOTSTRAP]"
SERVICE_USER_DEFAULT: str = "ubuntu"
CONTAINER_RUNTIME_COMMAND_DEFAULT: str = "docker"

DEPLOY_LOG_DEFAULT: Path = Path("/var/log/deploy.log")
MODEL_PULL_LOG_DEFAULT: Path = Path("/var/log/model-pull.log")
LOG_FILE_MODE_DEFAULT: int = 0o666

CW_AGENT_PACKAGE_URL_DEFAULT: str = "https://s3.amazonaws.com/amazoncloudwatch-agent/ubuntu/amd64/latest/amazon-cloudwatch-agent.deb"
CW_AGENT_PACKAGE_NAME_DEFAULT: str = "amazon-cloudwatch-agent"
CW_AGENT_DIR_DEFAULT: Path = Path("/opt/aws/amazon-cloudwatch-agent/bin")
CW_AGENT_SERVICE_DEFAULT: str = "amazon-cloudwatch-agent"

APT_PARALLEL_CONFIG_DEFAULT: Path = Path(
    "/etc/apt/apt.conf.d/80parallel-downloads"
)
MAKEPKG_CONFIG_DEFAULT: Path = Path("/etc/makepkg.conf")
BASE_PACKAGES_DEFAULT: List[str] = [
    "apt-transport-https",
    "ca-certificates",
    "curl",
    "software-properties-common",
    "git",
    "make",
    "parallel",
]
DOCKER_PACKAGES_DEFAULT: List[str] = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-compose-plugin",
]
DOCKER_GPG_URL_DEFAULT: str = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_REPO_URL_DEFAULT: str = "https://download.docker.com/linux/ubuntu"
DOCKER_KEYRING_DEFAULT: Path = Path("/etc/apt/keyrings/docker.asc")
DOCKER_SOURCE_LIST_DEFAULT: Path = Path("/etc/apt/sources.list.d/docker.list")

DOCKER_DAEMON_CONFIG_DEFAULT: Path = Path("/etc/docker/daemon.json")
DOCKER_SOCKET_DEFAULT: Path = Path("/var/run/docker.sock")

SOURCE_HOST_DEFAULT: str = "github.com"
SOURCE_REPOSITORY_DEFAULT: str = "rfomerand/ds_aws_docker"
CREDENTIAL_FILE_DEFAULT: Path = Path("/root/.github-token")

MODEL_NAME_DEFAULT: str = "deepseek-r1:671b"
MODEL_CONTAINER_DEFAULT: str = "ollama"
OLLAMA_API_PORT_DEFAULT: int = 11434
OLLAMA_HEALTH_PATH_DEFAULT: str = "/api/tags"
PULL_SCRIPT_PATH_DEFAULT: Path = Path("/root/pull-model.sh")
PULL_TASK_CONFIG_DEFAULT: Path = Path("/root/pull-model.yaml")
MODEL_PULL_STATUS_DEFAULT: Path = Path(
    "/var/lib/llm-host-bootstrap/model-pull-status.json"
)

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
    "hourglass": "⏳",
}


class LogSettings(BaseModel):
    """Local log destinations tailed by the telemetry agent."""

    deploy_log: Path = Field(default=DEPLOY_LOG_DEFAULT, description="Orchestrator log file.")
    model_pull_log: Path = Field(default=MODEL_PULL_LOG_DEFAULT, description="Model pull task log file.")
    file_mode: int = Field(default=LOG_FILE_MODE_DEFAULT, description="Permission bits applied to both log files.")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level used unless --verbose is given."
    )


class TelemetrySettings(BaseSettings):
    """CloudWatch agent settings. Log group and streams are substituted at render time."""
    model_config = SettingsConfigDict(env_prefix="TELEMETRY_", extra="ignore")

    log_group_name: str = Field(
        default="",
        validation_alias=AliasChoices("log_group_name", "LOG_GROUP_NAME"),
        description="Remote log group receiving both log files.",
    )
    app_log_stream: str = Field(
        default="",
        validation_alias=AliasChoices("app_log_stream", "APP_LOG_STREAM"),
        description="Log stream for the deployment log.",
    )
    model_pull_stream: str = Field(
        default="",
        validation_alias=AliasChoices("model_pull_stream", "MODEL_PULL_STREAM"),
        description="Log stream for the model pull log.",
    )
    agent_package_url: str = Field(default=CW_AGENT_PACKAGE_URL_DEFAULT, description="URL of the agent .deb package.")
    agent_package_name: str = Field(default=CW_AGENT_PACKAGE_NAME_DEFAULT, description="Debian package name of the agent.")
    agent_dir: Path = Field(default=CW_AGENT_DIR_DEFAULT, description="Agent binary/config directory.")
    agent_service: str = Field(default=CW_AGENT_SERVICE_DEFAULT, description="systemd unit of the agent.")
    run_as_user: str = Field(default="root", description="Account the agent runs as.")
    download_timeout: int = Field(default=300, description="Seconds allowed for the package download.")

    @property
    def config_path(self) -> Path:
        return self.agent_dir / "config.json"

    @property
    def ctl_path(self) -> Path:
        return self.agent_dir / "amazon-cloudwatch-agent-ctl"


class AptSettings(BaseModel):
    """Package manager tuning and package sets."""

    parallel_config_path: Path = Field(default=APT_PARALLEL_CONFIG_DEFAULT)
    makepkg_config_path: Path = Field(default=MAKEPKG_CONFIG_DEFAULT)
    retries: int = Field(default=3, description="Acquire::Retries passed to apt-get install.")
    pipeline_depth: int = Field(default=5)
    timeout: int = Field(default=180, description="HTTP(S) acquire timeout in seconds.")
    dl_limit: int = Field(default=50000, description="Download limit in KB/s.")
    base_packages: List[str] = Field(default_factory=lambda: list(BASE_PACKAGES_DEFAULT))
    docker_packages: List[str] = Field(default_factory=lambda: list(DOCKER_PACKAGES_DEFAULT))
    docker_gpg_url: str = Field(default=DOCKER_GPG_URL_DEFAULT)
    docker_repo_url: str = Field(default=DOCKER_REPO_URL_DEFAULT)
    docker_keyring: Path = Field(default=DOCKER_KEYRING_DEFAULT)
    docker_source_list: Path = Field(default=DOCKER_SOURCE_LIST_DEFAULT)


class DockerSettings(BaseModel):
    """Container runtime daemon configuration and readiness polling."""

    daemon_config_path: Path = Field(default=DOCKER_DAEMON_CONFIG_DEFAULT)
    log_driver: str = Field(default="json-file")
    log_max_size: str = Field(default="10m")
    log_max_file: str = Field(default="3")
    storage_driver: str = Field(default="overlay2")
    metrics_addr: str = Field(default="0.0.0.0:9323")
    experimental: bool = Field(default=True)
    ready_timeout: float = Field(default=60, description="Seconds to wait for `docker info` to succeed.")
    ready_interval: float = Field(default=1, description="Seconds between readiness polls.")
    info_timeout: float = Field(default=10, description="Seconds before a single `docker info` is abandoned.")
    socket_path: Path = Field(default=DOCKER_SOCKET_DEFAULT)
    socket_mode: str = Field(default="666")


class SourceSettings(BaseSettings):
    """Workload source checkout. The token is never logged or dumped."""
    model_config = SettingsConfigDict(env_prefix="SOURCE_", extra="ignore")

    host: str = Field(default=SOURCE_HOST_DEFAULT)
    repository: str = Field(default=SOURCE_REPOSITORY_DEFAULT, description="owner/name of the repository to clone.")
    token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("token", "GITHUB_TOKEN"),
        description="Access credential embedded in the clone URL.",
        exclude=True,
    )
    credential_file: Path = Field(default=CREDENTIAL_FILE_DEFAULT)
    persist_credential: bool = Field(default=True, description="Write the token to credential_file (mode 0600).")
    scrub_remote_url: bool = Field(default=True, description="Reset origin to a token-free URL after cloning.")

    @property
    def name(self) -> str:
        return self.repository.rsplit("/", 1)[-1]

    @property
    def public_url(self) -> str:
        return f"https://{self.host}/{self.repository}.git"

    def authenticated_url(self) -> str:
        token = self.token.get_secret_value() if self.token else ""
        return f"https://oauth2:{token}@{self.host}/{self.repository}.git"


class WorkloadSettings(BaseModel):
    """Container stack startup."""

    compose_command: List[str] = Field(default_factory=lambda: ["docker", "compose", "up", "-d"])
    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = Field(default=30, ge=0)


class ModelPullSettings(BaseSettings):
    """Background model acquisition: health gate and pull retry policy."""
    model_config = SettingsConfigDict(env_prefix="MODEL_PULL_", extra="ignore", protected_namespaces=())

    model_name: str = Field(
        default=MODEL_NAME_DEFAULT,
        validation_alias=AliasChoices("model_name", "MODEL_NAME"),
    )
    container_name: str = Field(default=MODEL_CONTAINER_DEFAULT)
    api_host: str = Field(default="localhost")
    api_port: int = Field(default=OLLAMA_API_PORT_DEFAULT)
    health_path: str = Field(default=OLLAMA_HEALTH_PATH_DEFAULT)
    probe_timeout: float = Field(default=10, description="Seconds allowed for one API health probe.")
    health_max_attempts: int = Field(default=20, ge=1)
    health_interval_seconds: float = Field(default=30, ge=0)
    pull_max_attempts: int = Field(default=3, ge=1)
    pull_backoff_seconds: float = Field(default=60, ge=0)
    script_path: Path = Field(default=PULL_SCRIPT_PATH_DEFAULT)
    task_config_path: Path = Field(default=PULL_TASK_CONFIG_DEFAULT)
    status_file: Path = Field(default=MODEL_PULL_STATUS_DEFAULT)

    @property
    def health_url(self) -> str:
        return f"http://{self.api_host}:{self.api_port}{self.health_path}"


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(extra="ignore", protected_namespaces=())

    log_prefix: str = Field(default=LOG_PREFIX_DEFAULT, description="Prefix for log messages.")
    service_user: str = Field(default=SERVICE_USER_DEFAULT, description="Unprivileged account owning the checkout and running the stack.")
    container_runtime_command: str = Field(default=CONTAINER_RUNTIME_COMMAND_DEFAULT,
                                           description="Command for the container runtime CLI.")

    logs: LogSettings = Field(default_factory=LogSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    apt: AptSettings = Field(default_factory=AptSettings)
    docker: DockerSettings = Field(default_factory=DockerSettings)
    source: SourceSettings = Field(default_factory=SourceSettings)
    workload: WorkloadSettings = Field(default_factory=WorkloadSettings)
    model_pull: ModelPullSettings = Field(default_factory=ModelPullSettings)

    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))

    @property
    def service_home(self) -> Path:
        return Path("/home") / self.service_user

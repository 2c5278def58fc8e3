from unittest.mock import MagicMock

import pytest

from deploy.errors import BootstrapError
from deploy.steps.packages import (
    docker_source_line,
    install_base_packages,
    install_container_runtime,
    install_packages,
)


@pytest.fixture
def apt_manager():
    manager = MagicMock()
    manager.install.return_value = True
    manager.add_gpg_key_from_url.return_value = True
    manager.add_repository.return_value = True
    return manager


def test_docker_source_line(app_settings):
    line = docker_source_line(app_settings, "arm64", "noble")
    assert line == (
        f"deb [arch=arm64 signed-by={app_settings.apt.docker_keyring}] "
        "https://download.docker.com/linux/ubuntu noble stable"
    )


def test_install_base_packages(apt_manager, app_settings):
    install_base_packages(apt_manager, app_settings, 8)

    apt_manager.install.assert_called_once_with(
        [
            "apt-transport-https",
            "ca-certificates",
            "curl",
            "software-properties-common",
            "git",
            "make",
            "parallel",
        ],
        app_settings,
        update_first=True,
        max_procs=8,
        retries=3,
    )


def test_install_base_packages_failure_is_fatal(apt_manager, app_settings):
    apt_manager.install.return_value = False
    with pytest.raises(BootstrapError):
        install_base_packages(apt_manager, app_settings, 8)


def test_install_container_runtime(mocker, apt_manager, app_settings):
    mocker.patch("deploy.steps.packages.get_dpkg_architecture", return_value="amd64")
    mocker.patch("deploy.steps.packages.get_os_codename", return_value="jammy")

    install_container_runtime(apt_manager, app_settings, 4)

    apt_manager.add_gpg_key_from_url.assert_called_once_with(
        "https://download.docker.com/linux/ubuntu/gpg",
        str(app_settings.apt.docker_keyring),
        app_settings,
    )
    source_line = apt_manager.add_repository.call_args.args[0]
    assert "arch=amd64" in source_line
    assert source_line.endswith("jammy stable")
    apt_manager.install.assert_called_once_with(
        ["docker-ce", "docker-ce-cli", "containerd.io", "docker-compose-plugin"],
        app_settings,
        update_first=False,
        max_procs=4,
    )


def test_install_container_runtime_unknown_codename(mocker, apt_manager, app_settings):
    mocker.patch("deploy.steps.packages.get_dpkg_architecture", return_value="amd64")
    mocker.patch("deploy.steps.packages.get_os_codename", return_value=None)

    with pytest.raises(BootstrapError, match="codename"):
        install_container_runtime(apt_manager, app_settings, 4)
    apt_manager.install.assert_not_called()


def test_install_container_runtime_key_failure(apt_manager, app_settings):
    apt_manager.add_gpg_key_from_url.return_value = False
    with pytest.raises(BootstrapError, match="signing key"):
        install_container_runtime(apt_manager, app_settings, 4)


def test_install_packages_base_before_docker(mocker, app_settings):
    mocker.patch("deploy.steps.packages.get_cpu_count", return_value=2)
    mocker.patch("deploy.steps.packages.AptManager")
    parent = MagicMock()
    mocker.patch(
        "deploy.steps.packages.install_base_packages", parent.base
    )
    mocker.patch(
        "deploy.steps.packages.install_container_runtime", parent.docker
    )

    install_packages(app_settings)

    assert [c[0] for c in parent.mock_calls] == ["base", "docker"]

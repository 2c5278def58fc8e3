# deploy/steps/packages.py
# -*- coding: utf-8 -*-
"""
Installs base utilities, then the container runtime from Docker's apt
repository.
"""

import logging
from typing import Optional

from common.command_utils import log_deploy
from common.debian.apt_manager import AptManager
from common.system_utils import (
    get_cpu_count,
    get_dpkg_architecture,
    get_os_codename,
)
from deploy.config_models import AppSettings
from deploy.errors import BootstrapError

module_logger = logging.getLogger(__name__)


def docker_source_line(
    app_settings: AppSettings, arch: str, codename: str
) -> str:
    apt = app_settings.apt
    return (
        f"deb [arch={arch} signed-by={apt.docker_keyring}] "
        f"{apt.docker_repo_url} {codename} stable"
    )


def install_base_packages(
    apt_manager: AptManager,
    app_settings: AppSettings,
    cores: int,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    pkgs = app_settings.apt.base_packages
    log_deploy(
        f"{symbols.get('package', '📦')} Installing base packages: {', '.join(pkgs)}...",
        "info",
        logger_to_use,
        app_settings,
    )
    if not apt_manager.install(
        pkgs,
        app_settings,
        update_first=True,
        max_procs=cores,
        retries=app_settings.apt.retries,
    ):
        raise BootstrapError(
            "Failed to install base packages.", step_tag="PACKAGES"
        )


def install_container_runtime(
    apt_manager: AptManager,
    app_settings: AppSettings,
    cores: int,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Sets up Docker's signing key and apt source for this host's architecture
    and codename, then installs the engine and compose plugin.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    apt = app_settings.apt

    log_deploy(
        f"{symbols.get('step', '➡️')} Setting up Docker apt repository...",
        "info",
        logger_to_use,
        app_settings,
    )
    if not apt_manager.add_gpg_key_from_url(
        apt.docker_gpg_url, str(apt.docker_keyring), app_settings
    ):
        raise BootstrapError(
            "Failed to install the Docker signing key.", step_tag="PACKAGES"
        )

    arch = get_dpkg_architecture(app_settings, logger_to_use)
    codename = get_os_codename(app_settings, current_logger=logger_to_use)
    if not codename:
        raise BootstrapError(
            "Could not determine OS codename for Docker.", step_tag="PACKAGES"
        )

    if not apt_manager.add_repository(
        docker_source_line(app_settings, arch, codename),
        str(apt.docker_source_list),
        app_settings,
        update_after=True,
    ):
        raise BootstrapError(
            "Failed to configure the Docker apt source.", step_tag="PACKAGES"
        )

    log_deploy(
        f"{symbols.get('package', '📦')} Installing Docker packages: {', '.join(apt.docker_packages)}...",
        "info",
        logger_to_use,
        app_settings,
    )
    # Lists were refreshed by add_repository.
    if not apt_manager.install(
        apt.docker_packages,
        app_settings,
        update_first=False,
        max_procs=cores,
    ):
        raise BootstrapError(
            "Failed to install Docker packages.", step_tag="PACKAGES"
        )
    log_deploy(
        f"{symbols.get('success', '✅')} Docker Engine packages installed.",
        "success",
        logger_to_use,
        app_settings,
    )


def install_packages(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    logger_to_use = current_logger if current_logger else module_logger
    cores = get_cpu_count(app_settings, logger_to_use)
    apt_manager = AptManager(logger=logger_to_use)
    install_base_packages(apt_manager, app_settings, cores, logger_to_use)
    install_container_runtime(apt_manager, app_settings, cores, logger_to_use)

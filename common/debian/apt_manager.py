# common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import os
import subprocess
from typing import List, Optional, Union

from common.command_utils import (
    command_exists,
    run_command,
    run_elevated_command,
)
from common.file_utils import write_config_file
from deploy.config_models import AppSettings, AptSettings

NONINTERACTIVE_ENV = ["env", "DEBIAN_FRONTEND=noninteractive"]
CONFFILE_OPTIONS = [
    "-o",
    "Dpkg::Options::=--force-confdef",
    "-o",
    "Dpkg::Options::=--force-confold",
]


def render_parallel_download_config(apt_settings: AptSettings) -> str:
    """apt.conf snippet tuning download pipelining, timeouts and rate limits."""
    lines = ['Acquire::Queue-Mode "host";']
    for scheme in ("http", "https"):
        lines.append(
            f'Acquire::{scheme}::Pipeline-Depth "{apt_settings.pipeline_depth}";'
        )
        lines.append(f'Acquire::{scheme}::Timeout "{apt_settings.timeout}";')
    for scheme in ("http", "https"):
        lines.append(f'Acquire::{scheme}::Dl-Limit "{apt_settings.dl_limit}";')
    return "\n".join(lines) + "\n"


class AptManager:
    """
    A centralized manager for Debian apt packages using command-line tools.
    Installs are non-interactive, keep existing conffiles and skip packages
    that are already installed.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initializes the AptManager.
        Args:
            logger: An optional logging object.
        """
        self.logger = logger or logging.getLogger(__name__)
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )

    def update(
        self, app_settings: AppSettings, raise_error: bool = False
    ) -> bool:
        """
        Updates the list of available packages using 'apt-get update'.

        Args:
            app_settings: The application settings.
            raise_error: Whether to raise an exception on failure.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        try:
            run_elevated_command(
                NONINTERACTIVE_ENV + ["apt-get", "update", "-q"],
                app_settings,
                current_logger=self.logger,
            )
            self.logger.info("Apt package lists updated successfully.")
            return True
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Failed to update apt cache: {e}")
            if raise_error:
                raise
            return False

    def is_installed(self, pkg_name: str, app_settings: AppSettings) -> bool:
        status_cmd = [
            "dpkg-query",
            "-W",
            "-f=${db:Status-Status}",
            pkg_name,
        ]
        try:
            result = run_command(
                status_cmd,
                app_settings,
                capture_output=True,
                check=True,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError:
            return False
        return (
            "installed" in result.stdout
            and "not-installed" not in result.stdout
        )

    def install(
        self,
        packages: Union[List[str], str],
        app_settings: AppSettings,
        update_first: bool = True,
        max_procs: Optional[int] = None,
        retries: Optional[int] = None,
    ) -> bool:
        """
        Installs one or more packages using 'apt-get install'.

        Args:
            packages: A single package name or a list of package names.
            app_settings: The application settings.
            update_first: Whether to update the package lists before installing.
            max_procs: Value for DPkg::MaxProcs, normally the host core count.
            retries: Value for Acquire::Retries, apt's own download retry count.

        Returns:
            True if successful, False otherwise.
        """
        if not isinstance(packages, list):
            packages = [packages]

        if update_first:
            if not self.update(app_settings):
                return False

        packages_to_install = []
        for pkg_name in packages:
            if self.is_installed(pkg_name, app_settings):
                self.logger.info(
                    f"Package '{pkg_name}' is already installed. Skipping."
                )
            else:
                self.logger.info(
                    f"Marking package for installation: {pkg_name}"
                )
                packages_to_install.append(pkg_name)

        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return True

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        cmd = NONINTERACTIVE_ENV + [
            "apt-get",
            "install",
            "-y",
            "--no-install-recommends",
        ] + CONFFILE_OPTIONS
        if retries is not None:
            cmd += ["-o", f"Acquire::Retries={retries}"]
        if max_procs is not None:
            cmd += ["-o", f"DPkg::MaxProcs={max_procs}"]
        cmd += packages_to_install
        try:
            run_elevated_command(
                cmd, app_settings, current_logger=self.logger
            )
            self.logger.info("Packages installed successfully.")
            return True
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Failed to install packages: {e}")
            return False

    def add_repository(
        self,
        source_line: str,
        list_path: str,
        app_settings: AppSettings,
        update_after: bool = True,
    ) -> bool:
        """
        Adds an apt repository as a one-line ``.list`` file. An identical
        existing file is left untouched.

        Args:
            source_line: The full ``deb [...] URL suite component`` line.
            list_path: Destination under /etc/apt/sources.list.d.
            app_settings: The application settings.
            update_after: Whether to update package lists after adding.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info(f"Adding repository: {source_line}")
        try:
            write_config_file(
                list_path,
                source_line + "\n",
                app_settings,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError as e:
            self.logger.error(
                f"Failed to create repository file '{list_path}': {e}"
            )
            return False

        if update_after:
            return self.update(app_settings)
        return True

    def add_gpg_key_from_url(
        self, key_url: str, keyring_path: str, app_settings: AppSettings
    ) -> bool:
        """
        Downloads an ASCII-armoured signing key to ``keyring_path`` and makes
        it world-readable. An existing keyring is kept.

        Args:
            key_url: The URL of the GPG key.
            keyring_path: The path to save the keyring file.
            app_settings: The application settings.

        Returns:
            True if successful, False otherwise.
        """
        if os.path.exists(keyring_path):
            self.logger.info(
                f"Keyring {keyring_path} already present. Skipping download."
            )
            return True

        self.logger.info(f"Adding GPG key from {key_url} to {keyring_path}")
        keyring_dir = os.path.dirname(keyring_path)
        try:
            run_elevated_command(
                ["install", "-m", "0755", "-d", keyring_dir],
                app_settings,
                current_logger=self.logger,
            )
            run_elevated_command(
                ["curl", "-fsSL", key_url, "-o", keyring_path],
                app_settings,
                current_logger=self.logger,
            )
            run_elevated_command(
                ["chmod", "a+r", keyring_path],
                app_settings,
                current_logger=self.logger,
            )
            self.logger.info("GPG key added and permissions set.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to add GPG key: {e}")
            return False

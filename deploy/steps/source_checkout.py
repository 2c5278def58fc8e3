# deploy/steps/source_checkout.py
# -*- coding: utf-8 -*-
"""
Clones the workload repository into the service user's home directory.

The access token only ever appears in the clone command itself. Logged
command lines and captured git output have it masked, and once the clone
succeeds the origin remote can be reset to the token-free URL.
"""

import logging
from pathlib import Path
from typing import Optional

from common.command_utils import log_deploy, run_elevated_command
from common.file_utils import write_config_file
from deploy.config_models import AppSettings
from deploy.errors import MissingCredentialError

module_logger = logging.getLogger(__name__)


def checkout_path(app_settings: AppSettings) -> Path:
    return app_settings.service_home / app_settings.source.name


def require_token(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> str:
    """
    Return the repository token or raise MissingCredentialError.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    token = app_settings.source.token
    value = token.get_secret_value() if token else ""
    if not value:
        log_deploy(
            f"{symbols.get('error', '❌')} Error: github_token is not set",
            "error",
            logger_to_use,
            app_settings,
        )
        raise MissingCredentialError(
            "Repository access token is not set.", step_tag="SOURCE_CHECKOUT"
        )
    return value


def persist_credential(
    token: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    write_config_file(
        app_settings.source.credential_file,
        token + "\n",
        app_settings,
        mode="600",
        current_logger=current_logger,
    )


def clone_repository(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Clone the workload repository, persist the credential when enabled and
    hand ownership of the checkout to the service user.

    Raises:
        MissingCredentialError: If no token is configured. Nothing is cloned.
        subprocess.CalledProcessError: If git or chown fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    source = app_settings.source
    user = app_settings.service_user

    token = require_token(app_settings, logger_to_use)
    if source.persist_credential:
        persist_credential(token, app_settings, logger_to_use)

    target = checkout_path(app_settings)
    if (target / ".git").is_dir():
        log_deploy(
            f"{symbols.get('info', 'ℹ️')} Checkout {target} already exists. Skipping clone.",
            "info",
            logger_to_use,
            app_settings,
        )
    else:
        log_deploy(
            f"{symbols.get('step', '➡️')} Cloning {source.public_url} into {target}...",
            "info",
            logger_to_use,
            app_settings,
        )
        run_elevated_command(
            ["git", "clone", source.authenticated_url(), str(target)],
            app_settings,
            capture_output=True,
            current_logger=logger_to_use,
            secrets=[token],
        )
        if source.scrub_remote_url:
            run_elevated_command(
                [
                    "git",
                    "-C",
                    str(target),
                    "remote",
                    "set-url",
                    "origin",
                    source.public_url,
                ],
                app_settings,
                current_logger=logger_to_use,
            )

    run_elevated_command(
        ["chown", "-R", f"{user}:{user}", str(target)],
        app_settings,
        current_logger=logger_to_use,
    )
    log_deploy(
        f"{symbols.get('success', '✅')} Repository checked out at {target}.",
        "success",
        logger_to_use,
        app_settings,
    )

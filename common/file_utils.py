# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: idempotent config writes and log file
preparation.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from deploy.config_models import (
    SYMBOLS_DEFAULT,
    AppSettings,
)

from .command_utils import log_deploy, run_elevated_command

module_logger = logging.getLogger(__name__)


def file_has_content(file_path: Path, content: str) -> bool:
    """
    True when ``file_path`` exists and holds exactly ``content``. Unreadable
    files count as different.
    """
    try:
        return file_path.read_text(encoding="utf-8") == content
    except (FileNotFoundError, PermissionError, IsADirectoryError, UnicodeDecodeError):
        return False


def write_config_file(
    file_path: Union[str, Path],
    content: str,
    app_settings: Optional[AppSettings],
    mode: str = "644",
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Writes ``content`` to ``file_path`` with root privileges, creating parent
    directories as needed. A file that already holds identical content is left
    untouched, so repeated runs have no side effects.

    Args:
        file_path: Destination path.
        content: Full file content.
        app_settings: Settings providing log symbols.
        mode: Octal permission string applied by ``install``.
        current_logger: Logger to use.

    Returns:
        True if the file was written, False if it was already up to date.

    Raises:
        subprocess.CalledProcessError: If the elevated install fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )
    target = Path(file_path)

    if file_has_content(target, content):
        log_deploy(
            f"{symbols.get('info', 'ℹ️')} {target} is already up to date. Skipping write.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    temp_file_path = ""
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            delete=False,
            prefix="llm_bootstrap_",
            suffix=".tmp",
            encoding="utf-8",
        ) as temp_f:
            temp_f.write(content)
            temp_file_path = temp_f.name
        run_elevated_command(
            ["install", "-D", "-m", mode, temp_file_path, str(target)],
            app_settings,
            current_logger=logger_to_use,
        )
    finally:
        if temp_file_path and os.path.exists(temp_file_path):
            os.unlink(temp_file_path)

    log_deploy(
        f"{symbols.get('success', '✅')} Wrote {target}",
        "success",
        logger_to_use,
        app_settings,
    )
    return True


def ensure_log_file(
    file_path: Union[str, Path],
    mode: int,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Creates ``file_path`` if missing (never truncating it) and applies
    ``mode`` so other processes can append to it.
    """
    logger_to_use = current_logger if current_logger else module_logger
    run_elevated_command(
        ["touch", str(file_path)],
        app_settings,
        current_logger=logger_to_use,
    )
    run_elevated_command(
        ["chmod", format(mode, "o"), str(file_path)],
        app_settings,
        current_logger=logger_to_use,
    )

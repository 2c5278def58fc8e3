# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing shell commands and logging their output.
"""

import logging
import os
import shutil
import subprocess
from typing import Dict, Iterable, List, Optional, Union

# Import AppSettings for type hinting and SYMBOLS_DEFAULT for fallback
from deploy.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)

REDACTED = "****"


def log_deploy(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs a message for the deployment at the requested level.

    Args:
        message (str): The log message to be recorded.
        level (str): One of "debug", "info", "success", "warning", "error" or
            "critical". "success" is logged at INFO. Defaults to "info".
        current_logger (Optional[logging.Logger]): Logger to use. Falls back to
            the module logger.
        app_settings (Optional[AppSettings]): Application settings, accepted so
            every caller can pass its context through.
        exc_info (bool): Include exception information. Defaults to False.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    else:
        effective_logger.info(message, exc_info=exc_info)


def redact(text: str, secrets: Optional[Iterable[str]]) -> str:
    """Replace every non-empty secret in ``text`` with a placeholder."""
    if not secrets:
        return text
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def _get_elevated_command_prefix() -> List[str]:
    """
    Returns ``["sudo"]`` unless the process already runs as root.
    """
    return [] if os.geteuid() == 0 else ["sudo"]


def run_command(
    command: Union[List[str], str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    shell: bool = False,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    secrets: Optional[Iterable[str]] = None,
    timeout: Optional[float] = None,
    log_level: str = "info",
) -> subprocess.CompletedProcess:
    """
    Executes a system command and logs the process details and results.

    Args:
        command (Union[List[str], str]): The command to execute. A list is
            joined into one string when ``shell`` is True.
        app_settings (Optional[AppSettings]): Settings providing log symbols.
        check (bool): Raise CalledProcessError on a non-zero exit code.
        shell (bool): Run the command through the shell.
        capture_output (bool): Capture stdout and stderr.
        text (bool): Decode output streams as text.
        cmd_input (Optional[str]): Data passed to the command's stdin.
        current_logger (Optional[logging.Logger]): Logger for command details.
        cwd (Optional[str]): Working directory for the command.
        env (Optional[Dict[str, str]]): Environment for the command.
        secrets (Optional[Iterable[str]]): Values masked in every logged line
            (command line, stdout, stderr).
        timeout (Optional[float]): Seconds before the command is killed.
        log_level (str): Level of the "Executing" line. Polling callers pass
            "debug".

    Returns:
        subprocess.CompletedProcess: The completed process.

    Raises:
        subprocess.CalledProcessError: On a non-zero exit code when ``check``.
        subprocess.TimeoutExpired: When ``timeout`` elapses.
        FileNotFoundError: If the executable does not exist.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )
    command_to_log_str: str
    command_to_run: Union[List[str], str]

    if shell:
        if isinstance(command, list):
            command_to_run = " ".join(command)
        else:
            command_to_run = command
        command_to_log_str = str(command_to_run)
    else:
        if isinstance(command, str):
            log_deploy(
                f"{symbols.get('warning', '!')} Running string command '{redact(command, secrets)}' without shell=True. Consider list format.",
                "warning",
                effective_logger,
                app_settings,
            )
            command_to_run = command.split()
            command_to_log_str = command
        else:
            command_to_run = command
            command_to_log_str = subprocess.list2cmdline(command)

    command_to_log_str = redact(command_to_log_str, secrets)

    log_deploy(
        f"{symbols.get('gear', '⚙️')} Executing: {command_to_log_str} {f'(in {cwd})' if cwd else ''}",
        log_level,
        effective_logger,
        app_settings,
    )
    try:
        result = subprocess.run(
            command_to_run,
            check=check,
            shell=shell,
            capture_output=capture_output,
            text=text,
            input=cmd_input,
            cwd=cwd,
            env=env,
            timeout=timeout,
        )
        if capture_output:
            if result.stdout and result.stdout.strip():
                log_deploy(
                    f"   stdout: {redact(result.stdout.strip(), secrets)}",
                    "debug",
                    effective_logger,
                    app_settings,
                )
            if (
                result.stderr
                and result.stderr.strip()
                and (not check or result.returncode == 0)
            ):
                log_deploy(
                    f"   stderr: {redact(result.stderr.strip(), secrets)}",
                    "debug",
                    effective_logger,
                    app_settings,
                )
        return result
    except subprocess.CalledProcessError as e:
        stdout_info = (
            e.stdout.strip()
            if e.stdout and hasattr(e.stdout, "strip")
            else "N/A"
        )
        stderr_info = (
            e.stderr.strip()
            if e.stderr and hasattr(e.stderr, "strip")
            else "N/A"
        )

        log_deploy(
            f"{symbols.get('error', '❌')} Command `{command_to_log_str}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        if stdout_info != "N/A":
            log_deploy(
                f"   stdout: {redact(stdout_info, secrets)}",
                "error",
                effective_logger,
                app_settings,
            )
        if stderr_info != "N/A":
            log_deploy(
                f"   stderr: {redact(stderr_info, secrets)}",
                "error",
                effective_logger,
                app_settings,
            )
        if secrets:
            raise subprocess.CalledProcessError(
                e.returncode,
                command_to_log_str,
                output=redact(e.stdout, secrets) if isinstance(e.stdout, str) else None,
                stderr=redact(e.stderr, secrets) if isinstance(e.stderr, str) else None,
            ) from None
        raise
    except FileNotFoundError as e:
        log_deploy(
            f"{symbols.get('error', '❌')} Command not found: {e.filename}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise


def run_elevated_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    secrets: Optional[Iterable[str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a command with root privileges, prefixing ``sudo`` when the
    process is not already root. Arguments mirror :func:`run_command`.
    """
    prefix = _get_elevated_command_prefix()
    elevated_command_list = prefix + list(command)
    return run_command(
        elevated_command_list,
        app_settings,
        check=check,
        shell=False,
        capture_output=capture_output,
        text=True,
        cmd_input=cmd_input,
        current_logger=current_logger,
        cwd=cwd,
        env=env,
        secrets=secrets,
    )


def run_as_user(
    user: str,
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a command as an unprivileged account via ``sudo -u``.
    """
    return run_command(
        ["sudo", "-u", user] + list(command),
        app_settings,
        check=check,
        capture_output=capture_output,
        current_logger=current_logger,
        cwd=cwd,
    )


def command_exists(command_name: str) -> bool:
    """
    Check if a command exists in the system's PATH.
    """
    return shutil.which(command_name) is not None


def check_package_installed(
    package_name: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Checks if a Debian package is installed using ``dpkg-query``.

    Args:
        package_name (str): The package to look up.
        app_settings (Optional[AppSettings]): Settings providing log symbols.
        current_logger (Optional[logging.Logger]): Logger to use.

    Returns:
        bool: True when dpkg reports "install ok installed", otherwise False.
        A missing ``dpkg-query`` binary is logged and reported as False.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )
    try:
        result = run_command(
            ["dpkg-query", "-W", "-f=${Status}", package_name],
            app_settings,
            check=False,
            capture_output=True,
            text=True,
            current_logger=logger_to_use,
        )
        return (
            result.returncode == 0 and "install ok installed" in result.stdout
        )
    except FileNotFoundError:
        log_deploy(
            f"{symbols.get('error', '❌')} dpkg-query command not found. Cannot check package '{package_name}'.",
            "error",
            logger_to_use,
            app_settings,
        )
        return False

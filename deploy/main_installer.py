# deploy/main_installer.py
# -*- coding: utf-8 -*-
"""
Entry point of the first-boot host bootstrap.

Runs the provisioning steps in strict order. A fatal step failure stops the
run with exit code 1; the final step hands the model download off to a
detached background task and the bootstrap exits without waiting for it.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from common.command_utils import log_deploy
from common.core_utils import setup_logging
from common.orchestrator import Orchestrator
from deploy import config as static_config
from deploy.config_loader import load_app_settings
from deploy.config_models import LOG_PREFIX_DEFAULT, AppSettings
from deploy.state_manager import (
    clear_state_file,
    initialize_state_system,
    view_completed_steps,
)
from deploy.step_executor import ProvisioningStep, execute_step
from deploy.steps.docker_runtime import configure_docker_runtime
from deploy.steps.host_prep import prepare_host
from deploy.steps.model_pull_handoff import hand_off_model_pull
from deploy.steps.monitoring_agent import install_monitoring_agent
from deploy.steps.packages import install_packages
from deploy.steps.source_checkout import clone_repository
from deploy.steps.workload import start_workload
from model_pull.status import read_status

logger = logging.getLogger(__name__)

BOOTSTRAP_STEPS: List[ProvisioningStep] = [
    ProvisioningStep(
        "HOST_PREP",
        "Prepare log files and package-manager parallelism",
        prepare_host,
        rerunnable=True,
    ),
    ProvisioningStep(
        "MONITORING_AGENT",
        "Install and start the CloudWatch agent",
        install_monitoring_agent,
    ),
    ProvisioningStep(
        "PACKAGES",
        "Install base utilities and Docker Engine",
        install_packages,
    ),
    ProvisioningStep(
        "DOCKER_RUNTIME",
        "Configure and restart the Docker daemon",
        configure_docker_runtime,
    ),
    ProvisioningStep(
        "SOURCE_CHECKOUT",
        "Clone the workload repository",
        clone_repository,
    ),
    ProvisioningStep(
        "WORKLOAD",
        "Start the container stack",
        start_workload,
        rerunnable=True,
    ),
    ProvisioningStep(
        "MODEL_PULL_HANDOFF",
        "Launch the background model pull",
        hand_off_model_pull,
        rerunnable=True,
    ),
]


def build_orchestrator(
    app_settings: AppSettings,
    force_rerun: bool = False,
    current_logger: Optional[logging.Logger] = None,
    steps: Optional[List[ProvisioningStep]] = None,
    state_file: Optional[Path] = None,
) -> Orchestrator:
    logger_to_use = current_logger if current_logger else logger
    orchestrator = Orchestrator(app_settings, logger_to_use)
    for step in steps if steps is not None else BOOTSTRAP_STEPS:
        orchestrator.add_task(
            step.tag,
            execute_step,
            kwargs={
                "step_tag": step.tag,
                "step_description": step.description,
                "step_function": step.func,
                "current_logger_instance": logger_to_use,
                "force_rerun": force_rerun,
                "rerunnable": step.rerunnable,
                "state_file": state_file,
            },
            fatal=step.fatal,
        )
    return orchestrator


def view_configuration(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """Print the effective configuration. The repository token is never shown."""
    logger_to_use = current_logger if current_logger else logger
    log_deploy(
        f"{app_settings.symbols.get('info', 'ℹ️')} Effective configuration:",
        "info",
        logger_to_use,
        app_settings,
    )
    print(yaml.safe_dump(app_settings.model_dump(mode="json"), sort_keys=False))
    token_state = "set" if app_settings.source.token else "NOT SET"
    print(f"source.token: <{token_state}>")


def view_model_pull_status(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> int:
    logger_to_use = current_logger if current_logger else logger
    symbols = app_settings.symbols
    status_path = app_settings.model_pull.status_file
    status = read_status(status_path, current_logger=logger_to_use)
    if status is None:
        log_deploy(
            f"{symbols.get('info', 'ℹ️')} No model pull status recorded at {status_path}.",
            "info",
            logger_to_use,
            app_settings,
        )
        return 1
    print(
        f"model={status.model} state={status.state} pid={status.pid} "
        f"finished={status.finished} updated={status.updated_at} detail={status.detail}"
    )
    if not status.finished:
        log_deploy(
            f"{symbols.get('hourglass', '⏳')} Model pull is still in progress (pid {status.pid}).",
            "info",
            logger_to_use,
            app_settings,
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="First-boot bootstrap for an LLM inference host",
        epilog="Example: llm-bootstrap --config-file /etc/llm-bootstrap/config.yaml",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config-file",
        default=static_config.CONFIG_FILE_DEFAULT,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-run steps already recorded as completed.",
    )
    parser.add_argument(
        "--view-config",
        action="store_true",
        help="View current configuration settings and exit.",
    )
    parser.add_argument(
        "--view-state",
        action="store_true",
        help="View completed bootstrap steps and exit.",
    )
    parser.add_argument(
        "--clear-state",
        action="store_true",
        help="Clear all progress state and exit.",
    )
    parser.add_argument(
        "--model-pull-status",
        action="store_true",
        help="Show the background model pull status and exit.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )

    config_group = parser.add_argument_group(
        "Configuration Overrides (CLI > YAML > ENV > Defaults)"
    )
    config_group.add_argument(
        "--github-token",
        default=None,
        help="Repository access token. Prefer the GITHUB_TOKEN environment variable.",
    )
    config_group.add_argument(
        "--repository", default=None, help="owner/name of the workload repository."
    )
    config_group.add_argument(
        "--log-group-name", default=None, help="Remote log group name."
    )
    config_group.add_argument(
        "--app-log-stream", default=None, help="Log stream for the deploy log."
    )
    config_group.add_argument(
        "--model-pull-stream",
        default=None,
        help="Log stream for the model pull log.",
    )
    config_group.add_argument(
        "--model-name", default=None, help="Model to pull in the background."
    )
    config_group.add_argument(
        "-l",
        "--log-prefix",
        default=None,
        help=f"Log prefix. Default: {LOG_PREFIX_DEFAULT}",
    )
    config_group.add_argument(
        "--service-user",
        default=None,
        help="Account that owns the checkout and runs the stack.",
    )
    return parser


def main(cli_args_list: Optional[List[str]] = None) -> int:
    parser = build_parser()
    parsed_cli_args = parser.parse_args(
        cli_args_list if cli_args_list is not None else sys.argv[1:]
    )

    try:
        app_config = load_app_settings(
            parsed_cli_args, parsed_cli_args.config_file
        )
    except SystemExit as e:
        print(
            f"CRITICAL: Failed to load or validate application configuration: {e}",
            file=sys.stderr,
        )
        return 1

    setup_logging(
        log_level=(
            logging.DEBUG
            if parsed_cli_args.verbose
            else logging.getLevelName(app_config.logs.level)
        ),
        log_to_console=True,
        log_prefix=app_config.log_prefix,
    )
    symbols = app_config.symbols

    if parsed_cli_args.view_config:
        view_configuration(app_config, logger)
        return 0
    if parsed_cli_args.model_pull_status:
        return view_model_pull_status(app_config, logger)

    log_deploy(
        f"{symbols.get('sparkles', '✨')} LLM host bootstrap (v{static_config.SCRIPT_VERSION}) starting...",
        "info",
        logger,
        app_config,
    )
    if os.geteuid() != 0:
        log_deploy(
            f"{symbols.get('error', '❌')} The bootstrap must run as root (state under {static_config.STATE_FILE_PATH.parent}, logs under /var/log). Re-run with sudo.",
            "error",
            logger,
            app_config,
        )
        return 1

    initialize_state_system(app_config, logger)

    if parsed_cli_args.view_state:
        completed = view_completed_steps(app_config, logger)
        log_deploy(
            f"{symbols.get('info', 'ℹ️')} Completed steps from {static_config.STATE_FILE_PATH}:",
            "info",
            logger,
            app_config,
        )
        if completed:
            for i, step_tag in enumerate(completed):
                print(f"  {i + 1}. {step_tag}")
        else:
            log_deploy(
                f"{symbols.get('info', 'ℹ️')} No steps completed.",
                "info",
                logger,
                app_config,
            )
        return 0
    if parsed_cli_args.clear_state:
        clear_state_file(app_config, logger)
        return 0

    orchestrator = build_orchestrator(
        app_config, force_rerun=parsed_cli_args.force, current_logger=logger
    )
    if not orchestrator.run():
        log_deploy(
            f"{symbols.get('critical', '🔥')} One or more steps failed.",
            "critical",
            logger,
            app_config,
        )
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

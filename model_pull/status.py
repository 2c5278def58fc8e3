# model_pull/status.py
# -*- coding: utf-8 -*-
"""
Completion record of the background model pull.

The task rewrites a small JSON document as it moves through its states so
that operators (and ``llm-bootstrap --model-pull-status``) can tell whether
the detached process is still waiting, pulling, or finished.
"""

import datetime
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

module_logger = logging.getLogger(__name__)

STATE_WAITING_FOR_HEALTH = "waiting_for_health"
STATE_PULLING = "pulling"
STATE_SUCCEEDED = "succeeded"
STATE_FAILED = "failed"


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class ModelPullStatus(BaseModel):
    state: str
    model: str
    pid: int = Field(default_factory=os.getpid)
    detail: str = ""
    updated_at: str = Field(default_factory=_now)

    @property
    def finished(self) -> bool:
        return self.state in (STATE_SUCCEEDED, STATE_FAILED)


def write_status(
    status: ModelPullStatus,
    status_file: Path,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Atomically replace ``status_file`` with ``status``. Failures to write are
    logged and otherwise ignored; the pull itself must not depend on them.
    """
    logger_to_use = current_logger if current_logger else module_logger
    try:
        status_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=status_file.parent, prefix=".model-pull-status.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(status.model_dump_json(indent=2))
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, status_file)
    except OSError as e:
        logger_to_use.warning(f"Could not write status file {status_file}: {e}")
        return
    logger_to_use.debug(f"Model pull status is now '{status.state}'")


def read_status(
    status_file: Path, current_logger: Optional[logging.Logger] = None
) -> Optional[ModelPullStatus]:
    """The last recorded status, or None if absent or unreadable."""
    logger_to_use = current_logger if current_logger else module_logger
    try:
        raw = status_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger_to_use.warning(f"Could not read status file {status_file}: {e}")
        return None
    try:
        return ModelPullStatus.model_validate_json(raw)
    except ValidationError as e:
        logger_to_use.warning(f"Ignoring malformed status file {status_file}: {e}")
        return None

# deploy/config.py
"""
Static constants for the host bootstrap.

Values here are not user-configurable: the state file location, the
version recorded in it, and the project root used to locate the default
YAML configuration.
"""

from pathlib import Path

# --- State File Configuration ---
STATE_FILE_DIR: str = "/var/lib/llm-host-bootstrap"
STATE_FILE_PATH: Path = Path(STATE_FILE_DIR) / "progress_state.txt"
# Represents the version of the bootstrap step logic. Bumping it invalidates
# recorded progress so every step runs again.
SCRIPT_VERSION: str = "1.0.0"

# deploy/ lives directly under the project root.
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent

CONFIG_FILE_DEFAULT: str = "config.yaml"

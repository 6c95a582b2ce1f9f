"""
Logging utilities for path resolution, rotation and environment detection.
"""

import os
import sys
from datetime import UTC, datetime
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

VALID_ENVIRONMENTS = ("local", "unit_test", "e2e_test", "production")


def resolve_log_base(log_base: str) -> Path:
    """
    Resolve log_base path to absolute path relative to project root.

    Args:
        log_base: Relative or absolute path to log directory

    Returns:
        Absolute path to log directory
    """
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path

    current_dir = Path.cwd()
    for parent in [current_dir] + list(current_dir.parents):
        if (parent / "pyproject.toml").exists():
            return parent / log_path

    return current_dir / log_path


def rotate_log_files(env_log_dir: Path) -> None:
    """
    Rotate existing log files by renaming them with a timestamp suffix.

    Called once at startup so every server session writes to fresh files.

    Args:
        env_log_dir: Path to the environment-specific log directory
    """
    if not env_log_dir.exists():
        return

    timestamp = datetime.now(UTC).strftime("%Y_%m_%d_%H%M%S")
    for log_file in env_log_dir.glob("*.log"):
        if log_file.stat().st_size == 0:
            continue
        rotated_path = log_file.parent / f"{log_file.stem}.log.{timestamp}"
        try:
            log_file.rename(rotated_path)
        except OSError as e:
            logger.warning("Could not rotate log file", name=log_file.name, error=str(e))


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        Environment name: "e2e_test", "unit_test", "local", or "production"
    """
    if "pytest" in sys.modules or "pytest" in sys.argv[0]:
        return "unit_test"

    env = os.getenv("RIDEMYLAY_ENV") or os.getenv("LOGGING_ENVIRONMENT")
    if env in VALID_ENVIRONMENTS:
        return env

    return "local"

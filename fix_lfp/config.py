"""
Runtime configuration for the Long File Path Fixer.

Defaults mirror the limits of the OneDrive client. Each value can be
overridden through the environment (or a .env file) and then again on the
command line.
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


# Longest absolute path the sync client accepts
DEFAULT_THRESHOLD = 376

# Copy retry policy: total attempts and first back-off delay (seconds)
DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY = 2.0

# Name of the mirror folder created in the user's home directory
RELOCATION_DIRNAME = "LFP"

# Supported ways of measuring a path's length
LENGTH_UNITS = ("chars", "utf8", "utf16")
DEFAULT_LENGTH_UNIT = "chars"

# Marker written as the first line of the report and log artifacts
ARTIFACT_MARKER = "Lfp"

SYSTEM_LOG_ROOT = Path("/var/log")
LOG_DIRNAME = "onedrive-findlogs"
LOG_PREFIX = "onedrive-findlonglog"
REPORT_PREFIX = "LFP_Report"


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if min_value is not None and number < min_value:
        raise ValueError(f"{name} must be at least {min_value}, got {number}")
    return number


def _env_float(name: str, default: float, min_value: float | None = None) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")
    if min_value is not None and number < min_value:
        raise ValueError(f"{name} must be at least {min_value:g}, got {number:g}")
    return number


def get_threshold() -> int:
    return _env_int("LFP_THRESHOLD", DEFAULT_THRESHOLD, min_value=1)


def get_max_retries() -> int:
    return _env_int("LFP_MAX_RETRIES", DEFAULT_MAX_RETRIES, min_value=1)


def get_base_delay() -> float:
    return _env_float("LFP_BASE_DELAY", DEFAULT_BASE_DELAY, min_value=0)


def validate_retry_settings(max_retries: int, base_delay: float) -> None:
    """
    Check a copy retry policy before any file is touched.

    Raises:
        ValueError: If fewer than one attempt or a negative delay is requested.
    """
    if max_retries < 1:
        raise ValueError(f"max retries must be at least 1, got {max_retries}")
    if base_delay < 0:
        raise ValueError(f"base delay must not be negative, got {base_delay:g}")


def get_relocation_root() -> Path:
    """
    Get the directory matched entries are mirrored into.

    Returns:
        LFP_RELOCATION_ROOT if set, otherwise ~/LFP.
    """
    override = os.environ.get("LFP_RELOCATION_ROOT")
    if override:
        return Path(os.path.abspath(os.path.expanduser(override)))
    return Path.home() / RELOCATION_DIRNAME


def get_log_dir() -> Path:
    """
    Get the directory the timestamped run log goes into.

    Uses /var/log/onedrive-findlogs when /var/log is writable, falling back
    to the system temp directory otherwise.
    """
    override = os.environ.get("LFP_LOG_DIR")
    if override:
        return Path(os.path.expanduser(override))
    if os.access(SYSTEM_LOG_ROOT, os.W_OK):
        return SYSTEM_LOG_ROOT / LOG_DIRNAME
    return Path(tempfile.gettempdir()) / LOG_DIRNAME


def get_report_dir() -> Path:
    """Desktop if the user has one, home directory otherwise."""
    desktop = Path.home() / "Desktop"
    if desktop.is_dir():
        return desktop
    return Path.home()


def timestamp_suffix(now: datetime | None = None) -> str:
    """Format used in artifact names, e.g. 101626-1430."""
    return (now or datetime.now()).strftime("%m%d%y-%H%M")

"""Configuration for the sandboxed filesystem tools."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()

DEFAULT_ZIP_LEVEL = 9
DEFAULT_RECENT_LIMIT = 10
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class HomeFsConfig:
    """Runtime configuration for the sandbox, archive engine and surfaces."""

    root: Path
    check_symlinks: bool = True
    zip_level: int = DEFAULT_ZIP_LEVEL
    recent_limit: int = DEFAULT_RECENT_LIMIT
    log_level: str = DEFAULT_LOG_LEVEL


def load_config(root: Optional[str] = None, check_symlinks: Optional[bool] = None) -> HomeFsConfig:
    """Build the configuration from HOMEFS_* environment variables.

    Explicit arguments (usually CLI flags) take precedence over the environment.
    """
    raw_root = root or os.getenv("HOMEFS_ROOT") or str(Path.home())
    if check_symlinks is None:
        check_symlinks = _parse_bool(os.getenv("HOMEFS_CHECK_SYMLINKS", "true"), "HOMEFS_CHECK_SYMLINKS")

    zip_level = _parse_int(os.getenv("HOMEFS_ZIP_LEVEL", str(DEFAULT_ZIP_LEVEL)), "HOMEFS_ZIP_LEVEL")
    if not 0 <= zip_level <= 9:
        raise ValueError("HOMEFS_ZIP_LEVEL must be between 0 and 9")

    recent_limit = _parse_int(
        os.getenv("HOMEFS_RECENT_LIMIT", str(DEFAULT_RECENT_LIMIT)), "HOMEFS_RECENT_LIMIT"
    )
    if recent_limit <= 0:
        raise ValueError("HOMEFS_RECENT_LIMIT must be a positive integer")

    log_level = os.getenv("HOMEFS_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()

    return HomeFsConfig(
        root=Path(raw_root).expanduser(),
        check_symlinks=check_symlinks,
        zip_level=zip_level,
        recent_limit=recent_limit,
        log_level=log_level,
    )


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for {name}: {value}") from exc


def _parse_bool(value: str, name: str) -> bool:
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"Invalid boolean for {name}: {value}")


def configure_logging(verbosity: int, default_level: str = DEFAULT_LOG_LEVEL) -> None:
    """Set up root logging; -v selects INFO and -vv DEBUG over the configured level."""
    level = getattr(logging, default_level, logging.WARNING)
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")

"""Logging configuration for vibe-history.

Every module logs through `get_logger(<component>)`, which returns a child of
the package logger `vibe_history`. `setup_logging` attaches the handlers to
that package logger once per process, so library users who never call it get
Python's default (silent) behaviour.
"""

import logging
import sys
from pathlib import Path

PACKAGE_LOGGER = "vibe_history"

# Default log directory
DEFAULT_LOG_DIR = Path.home() / "vibe-history" / "logs"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: int | str) -> int:
    """Turn a level name ("debug", "INFO") or number into a logging level.

    Raises:
        ValueError: If the name is not a standard level
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    name: str,
    log_dir: Path | None = None,
    level: int | str = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Configure logging for a vibe-history entry point.

    The log file is <log_dir>/<name>.log. Calling this again (for example
    from tests invoking the CLI repeatedly) only updates the level.

    Args:
        name: Entry point name (used for log filename)
        log_dir: Directory for log files (defaults to ~/vibe-history/logs/)
        level: Level number or name (defaults to INFO)
        console: Whether to also log to stderr

    Returns:
        Logger for the entry point
    """
    level = resolve_level(level)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    if package_logger.handlers:
        for handler in package_logger.handlers:
            handler.setLevel(level)
        return get_logger(name)

    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")]
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    return get_logger(name)


def get_logger(name: str) -> logging.Logger:
    """Get the logger for a vibe-history component ('vibe_history.<name>')."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")

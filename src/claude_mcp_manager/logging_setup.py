# Logging and terminal output for claude-mcp-manager
# ABOUTME: Persistent log file with timestamp and severity
# ABOUTME: Coloured INFO/SUCCESS/WARNING/ERROR lines when attached to a terminal
import logging
import sys
from pathlib import Path
from typing import TextIO

# ABOUTME: Terminal codes for coloured output
RESET = "\033[0m"
RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[0;33m"
BLUE = "\033[0;34m"
BOLD = "\033[1m"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# ABOUTME: Package root logger, module loggers propagate here
PACKAGE_LOGGER = "claude_mcp_manager"


def configure_logging(log_file: Path, level: int = logging.INFO) -> logging.Handler | None:
    """Attach a file handler to the package logger.

    ABOUTME: Never raises; a log file that cannot be opened only disables file logging

    Args:
        log_file: Path of the persistent log file
        level: Minimum level written to the file

    Returns:
        The installed handler, or None if the file could not be opened
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Replace handlers from a previous call (tests call main() repeatedly)
    for handler in list(logger.handlers):
        if getattr(handler, "_cmm_file_handler", False):
            logger.removeHandler(handler)
            handler.close()

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        print_warning(f"Failed to open log file {log_file}: {e}")
        return None

    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.setLevel(level)
    handler._cmm_file_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    try:
        log_file.chmod(0o600)
    except OSError:
        logger.debug(f"Could not restrict permissions on {log_file}")

    return handler


def _emit(stream: TextIO, color: str, message: str) -> None:
    if stream.isatty():
        print(f"{color}{message}{RESET}", file=stream)
    else:
        print(message, file=stream)


def print_info(message: str) -> None:
    _emit(sys.stdout, BLUE, f"INFO: {message}")


def print_success(message: str) -> None:
    _emit(sys.stdout, GREEN, f"SUCCESS: {message}")


def print_warning(message: str) -> None:
    # Warnings go to stderr
    _emit(sys.stderr, YELLOW, f"WARNING: {message}")


def print_error(message: str) -> None:
    _emit(sys.stderr, RED, f"ERROR: {message}")


def print_bold(message: str) -> None:
    _emit(sys.stdout, BOLD, message)

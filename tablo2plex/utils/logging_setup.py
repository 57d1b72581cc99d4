"""Logging setup for tablo2plex with console and optional rotating file output"""

import logging
import logging.handlers
import sys
from pathlib import Path


def parse_size(size: str, default: int = 10 * 1024 * 1024) -> int:
    """
    Parse a human size string such as "10MB" into bytes.

    Unknown suffixes or malformed numbers fall back to ``default``.
    """
    size = size.strip().upper()
    multipliers = {"GB": 1024 * 1024 * 1024, "MB": 1024 * 1024, "KB": 1024}
    for suffix, multiplier in multipliers.items():
        if size.endswith(suffix):
            try:
                return int(size[: -len(suffix)]) * multiplier
            except ValueError:
                return default
    return default


def setup_logging(
    log_level: str = "ERROR",
    log_file_name: str | None = None,
    log_to_console: bool = True,
    log_to_file: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    log_format: str | None = None,
    log_directory: Path | None = None,
) -> logging.Logger:
    """
    Set up logging for the tablo2plex process.

    This configures logging to write to:
    - Console (stdout)
    - File with rotation, when enabled

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file_name: Log file name (absolute, or relative to log_directory)
        log_to_console: Whether to log to console
        log_to_file: Whether to log to file
        max_bytes: Maximum size of log file before rotation (default 10MB)
        backup_count: Number of backup files to keep (default 5)
        log_format: Custom log format string
        log_directory: Directory for the log file (defaults to the working directory)

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.ERROR)

    if log_file_name is None:
        log_file_name = "tablo2plex.log"

    if Path(log_file_name).is_absolute():
        log_file_path = Path(log_file_name)
    else:
        log_file_path = (log_directory or Path.cwd()) / log_file_name

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        log_format or "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    )

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    if log_to_file:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    root_logger.info(f"tablo2plex logging initialized - Level: {log_level}")
    if log_to_file:
        root_logger.info(f"Log file: {log_file_path}")

    return root_logger

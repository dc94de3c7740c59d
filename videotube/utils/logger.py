"""
Logging utilities with size-based file rotation.

Key Features:
    - Console output plus one shared, size-rotated log file per process run
    - Date-based log directories with automatic cleanup of old runs
    - Log level controlled through the LOG_LEVEL environment variable
"""

import datetime
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILE_BASENAME = "videotube"

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

MAX_LOG_SIZE_MB = 5
MAX_LOG_SIZE_BYTES = MAX_LOG_SIZE_MB * 1024 * 1024
MAX_BACKUP_COUNT = 10
LOG_RETENTION_DAYS = 7

# All loggers of one process write to the same file
_run_started = datetime.datetime.now()
_date_dir = LOG_DIR / _run_started.strftime("%Y-%m-%d")
_date_dir.mkdir(exist_ok=True)
_GLOBAL_LOG_FILE = (
    _date_dir / f"{LOG_FILE_BASENAME}_{_run_started.strftime('%Y-%m-%d_%H-%M-%S')}.log"
)

_cleanup_done = False


class SafeRotatingFileHandler(RotatingFileHandler):
    """Size-based rotation handler that keeps writing when a rollover fails."""

    def doRollover(self):
        try:
            super().doRollover()
        except OSError as e:
            # The logger itself cannot be used from inside its own handler
            sys.stderr.write(
                f"Log rotation failed: {e}. Continuing with current log file.\n"
            )
            sys.stderr.flush()


def _get_log_level(level_str: str) -> int:
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_str.upper(), logging.INFO)


def setup_logger(name: str, level: str = None) -> logging.Logger:
    """Set up logger with both console and file handlers."""
    global _cleanup_done

    logger = logging.getLogger(name)
    log_level = _get_log_level(level or DEFAULT_LOG_LEVEL)
    logger.setLevel(log_level)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))

    file_handler = SafeRotatingFileHandler(
        _GLOBAL_LOG_FILE,
        maxBytes=MAX_LOG_SIZE_BYTES,
        backupCount=MAX_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    if not _cleanup_done:
        cleanup_old_logs(keep_days=LOG_RETENTION_DAYS)
        _cleanup_done = True

    return logger


def list_log_files() -> list[Path]:
    """Return a list of all log files in the log directory."""
    all_files = []
    for date_dir in LOG_DIR.iterdir():
        if date_dir.is_dir():
            all_files.extend(date_dir.glob(f"{LOG_FILE_BASENAME}_*.log"))
            all_files.extend(date_dir.glob(f"{LOG_FILE_BASENAME}_*.log.*"))
    return all_files


def cleanup_old_logs(keep_days: int = LOG_RETENTION_DAYS) -> int:
    """Delete date directories older than ``keep_days``. Returns files removed."""
    cutoff_time = datetime.datetime.now() - datetime.timedelta(days=keep_days)
    deleted_count = 0

    for date_dir in LOG_DIR.iterdir():
        if not date_dir.is_dir():
            continue
        try:
            dir_date = datetime.datetime.strptime(date_dir.name, "%Y-%m-%d")
        except ValueError:
            # Not one of ours
            continue
        if dir_date >= cutoff_time:
            continue

        for log_file in date_dir.iterdir():
            try:
                log_file.unlink()
                deleted_count += 1
            except (PermissionError, FileNotFoundError) as e:
                sys.stderr.write(f"Could not delete log file {log_file}: {e}\n")
        try:
            date_dir.rmdir()
        except OSError:
            # Still holds files another process has open
            pass

    return deleted_count

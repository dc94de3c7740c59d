"""
Common utilities package for the VideoTube application.

Logging and retry classification live here; password hashing, tokens and
upload staging are imported from their own modules.
"""

from videotube.utils.logger import cleanup_old_logs, list_log_files, setup_logger
from videotube.utils.retry_utils import is_retryable_db_error

__all__ = [
    # Logging utilities
    "setup_logger",
    "cleanup_old_logs",
    "list_log_files",
    # Retry utilities
    "is_retryable_db_error",
]

"""
Error classification for retrying database operations.

Only failures that say nothing about the statement itself (a dropped or
refused connection, a timed-out socket) are worth retrying; constraint
violations and programming errors are raised immediately.
"""

import errno

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from videotube.utils.logger import setup_logger

logger = setup_logger("retry_utils")

RETRYABLE_ERRNOS = {
    errno.ETIMEDOUT,
    errno.ECONNREFUSED,
    errno.ECONNRESET,
    errno.EHOSTUNREACH,
    errno.ENETUNREACH,
}


def is_retryable_db_error(e: Exception) -> bool:
    """
    Classify database errors for retry decisions.
    """
    if isinstance(e, IntegrityError):
        return False

    if isinstance(e, DBAPIError):
        if e.connection_invalidated:
            logger.info("Invalidated connection detected as retryable.")
            return True
        if isinstance(e, OperationalError):
            return True
        return False

    if isinstance(e, ConnectionError | TimeoutError):
        return True

    if isinstance(e, OSError) and e.errno in RETRYABLE_ERRNOS:
        logger.info(f"OSError errno {e.errno} detected as retryable.")
        return True

    return False

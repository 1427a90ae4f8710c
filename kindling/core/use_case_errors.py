"""Errors raised by kindling use cases, and helpers to report them.

Use cases catch broadly at their boundary and turn whatever they caught into a
message for the caller. KeyboardInterrupt and SystemExit are never caught.
A ConfigurationError aborts a whole indexing run, while any other error raised
while handling one file is recorded against that file and the run goes on.
"""

import logging

logger = logging.getLogger(__name__)

# Error types whose text is shown to users behind a category prefix
_DESCRIBED = (ValueError, RuntimeError)


class KindlingError(Exception):
    """Base class for errors whose message is shown to users unchanged.

    Attributes:
        message: The user-facing message.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(KindlingError):
    """Missing credentials, an invalid setting or mismatched vector dimensions."""


class CorruptStateError(KindlingError):
    """A checkpoint would serialize to a form its readers reject."""


def is_fatal(exception: BaseException) -> bool:
    """Return True if ``exception`` must stop a run instead of skipping one file."""
    return isinstance(exception, ConfigurationError)


def format_error_message(exception: Exception, operation_name: str) -> str:
    """Turn an exception caught at a use case boundary into a user message.

    Args:
        exception: The caught exception.
        operation_name: What was being done, e.g. "indexing" or "delete".

    Returns:
        The message of a KindlingError, a categorized message for I/O, value
        and runtime errors, or a generic internal-error message.
    """
    if isinstance(exception, KindlingError):
        return exception.message
    if isinstance(exception, OSError):
        # RedisKeyValueStore re-raises connection failures as ConnectionError
        return (
            f"I/O error: {exception}. "
            "Check file permissions, network access and store availability."
        )
    if isinstance(exception, _DESCRIBED):
        return f"{operation_name.capitalize()} error: {exception}"
    return f"Internal error during {operation_name}. Check logs for details."


def log_use_case_error(exception: Exception, operation_name: str) -> None:
    """Log a caught exception. Only unexpected types get a traceback."""
    if isinstance(exception, KindlingError):
        logger.error(exception.message)
    elif isinstance(exception, OSError):
        logger.error(f"I/O error during {operation_name}: {exception}")
    elif isinstance(exception, _DESCRIBED):
        logger.error(f"Error during {operation_name}: {exception}")
    else:
        logger.exception(f"Unexpected error during {operation_name}")

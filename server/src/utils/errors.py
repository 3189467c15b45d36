"""
Error handling utilities for consistent error message extraction.
"""


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract a human-readable message from an unknown error type.

    Falls back to the exception class name when the exception carries
    no message (e.g. a bare ``asyncio.TimeoutError()``).
    """
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return "Unknown error"


def format_status_error(error: BaseException | object) -> str:
    """Build the ``status`` text broadcast when a scan fails."""
    return f"Error: {get_error_message(error)}"

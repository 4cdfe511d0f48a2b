"""
Exception logging and formatting helpers for the proxy error boundary.

Everything here is called while a request is already failing, so none of these
functions may raise.
"""

import logging
import traceback


def _safe_str(obj) -> str:
    """
    Safely convert an object to string, handling cases where __str__ or __repr__ might fail.

    Args:
        obj: The object to convert to string

    Returns:
        A string representation of the object, falling back to safe alternatives
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            try:
                return f"<{type(obj).__name__} object (string conversion failed)>"
            except Exception:
                return "<object (all string conversions failed)>"


def _safe_get_exceptions(exception_group) -> list:
    """Return the sub-exceptions of an exception group, or an empty list."""
    try:
        return list(exception_group.exceptions)
    except Exception:
        return []


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with its traceback, expanding exception groups raised by
    the async stack into one record per sub-exception.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        safe_exception_str = _safe_str(exception) if exception is not None else "None"

        sub_exceptions = []
        if exception is not None and hasattr(exception, "exceptions"):
            sub_exceptions = _safe_get_exceptions(exception)

        if not sub_exceptions:
            logger.log(
                level,
                f"{safe_prefix} Exception: {safe_exception_str}",
                exc_info=exception if exception is not None else False,
            )
            return

        logger.log(
            level,
            f"{safe_prefix} Exception with {len(sub_exceptions)} sub-exceptions: {safe_exception_str}",
        )
        for i, sub_exc in enumerate(sub_exceptions):
            sub_exc_type = type(sub_exc).__name__
            logger.log(
                level,
                f"{safe_prefix} Sub-exception {i+1}: {sub_exc_type}: {_safe_str(sub_exc)}",
                exc_info=sub_exc,
            )
    except Exception:
        # Last resort, the error response must still go out
        try:
            logger.log(logging.ERROR, "Exception logging failed")
        except Exception:
            pass


def format_exception_trace(exception: Exception) -> str:
    """
    Format an exception with its traceback, the way it is shown to clients in
    the 502 body.

    Returns:
        The formatted traceback, or a one-line fallback if formatting fails
    """
    try:
        return "".join(
            traceback.format_exception(
                type(exception), exception, exception.__traceback__
            )
        )
    except Exception:
        try:
            return f"{type(exception).__name__}: {_safe_str(exception)}"
        except Exception:
            return "<exception (all formatting failed)>"

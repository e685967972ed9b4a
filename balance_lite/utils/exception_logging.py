"""
Exception formatting and logging helpers for the proxy error path.

Both helpers are written to never raise: they run while a request is already
failing and must not replace the original error with a new one.
"""

import logging


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


def _describe(exception) -> str:
    # httpx raises some transport errors (e.g. ReadTimeout) with an empty message
    text = _safe_str(exception)
    if text:
        return text
    try:
        return type(exception).__name__
    except Exception:
        return "<exception>"


def format_exception_message(exception: Exception) -> str:
    """
    Format an exception into a human-readable message for error bodies.

    Falls back to the exception class name when the message is empty and
    appends sub-exception messages for exception groups.

    Args:
        exception: The exception to format

    Returns:
        A non-empty string describing the exception
    """
    try:
        if exception is None:
            return "None"

        sub_exceptions = []
        if hasattr(exception, "exceptions"):
            sub_exceptions = _safe_get_exceptions(exception)

        if not sub_exceptions:
            return _describe(exception)

        sub_exception_strs = []
        for sub_exc in sub_exceptions:
            try:
                sub_exception_strs.append(
                    f"{type(sub_exc).__name__}: {_describe(sub_exc)}"
                )
            except Exception:
                sub_exception_strs.append("(formatting failed)")
        return f"{_describe(exception)} (Sub-exceptions: {'; '.join(sub_exception_strs)})"

    except Exception:
        try:
            return f"<{type(exception).__name__} (formatting failed)>"
        except Exception:
            return "<exception (all formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception, including each sub-exception of an exception group.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        sub_exceptions = []
        if exception is not None and hasattr(exception, "exceptions"):
            sub_exceptions = _safe_get_exceptions(exception)

        if not sub_exceptions:
            logger.log(
                level,
                f"{safe_prefix} {type(exception).__name__}: {_describe(exception)}",
                exc_info=exception if exception is not None else False,
            )
            return

        logger.log(
            level,
            f"{safe_prefix} Exception with {len(sub_exceptions)} sub-exceptions: {_describe(exception)}",
        )
        for i, sub_exc in enumerate(sub_exceptions):
            try:
                logger.log(
                    level,
                    f"{safe_prefix} Sub-exception {i+1}: {type(sub_exc).__name__}: {_describe(sub_exc)}",
                    exc_info=sub_exc,
                )
            except Exception:
                continue

    except Exception:
        # Last attempt without formatting; never propagate from here
        try:
            if logger is not None:
                logger.log(logging.ERROR, "Exception logging failed")
        except Exception:
            pass

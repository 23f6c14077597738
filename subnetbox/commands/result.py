"""
Result utilities for consistent success/error shapes across best-effort checks.

Note: Error details and tracebacks may be included in results. Do not pass
auth tokens or private keys to error classes, since results are printed.
"""

import traceback
from typing import Any, Optional

from subnetbox.commands.errors import SubnetboxError


def ok(data: Optional[Any] = None, **extras: Any) -> dict[str, Any]:
    """Standard success result shape."""
    result: dict[str, Any] = {"success": True}
    if data is not None:
        result["data"] = data
    if extras:
        result.update(extras)
    return result


def fail(
    message: str, *, error: Optional[Exception] = None, **extras: Any
) -> dict[str, Any]:
    """Standard failure result shape with optional exception details.

    Args:
        message: Human-readable error message
        error: Optional exception that caused the failure
        **extras: Additional fields to include in the result

    Returns:
        Dictionary with success=False and error details.
    """
    result: dict[str, Any] = {"success": False, "error": message}
    if error is not None:
        formatted = format_error(error)
        result["exception"] = formatted
        result["error_type"] = formatted["type"]
        if "code" in formatted:
            result["error_code"] = formatted["code"]
    if extras:
        result.update(extras)
    return result


def format_error(error: Exception) -> dict[str, Any]:
    """Format an exception with type, message, and traceback string."""
    result = {
        "type": type(error).__name__,
        "message": str(error),
        "traceback": "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ),
    }
    if isinstance(error, SubnetboxError):
        if error.code:
            result["code"] = error.code
        if error.details:
            result["details"] = error.details
    return result

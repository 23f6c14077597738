"""
Typed error classes for subnetbox.

This module provides the error hierarchy used by every deployment phase:
- SubnetboxError: Base exception for all subnetbox errors
- ConfigurationError: Missing environment, unreadable config, bad port plan
- ExternalProcessError: An invoked CLI or infra task exited non-zero
- ExtractionError: An expected token was absent from a tool's output
- PollTimeoutError: A bounded poll ran out of time
- StateError: A write-once fact was reassigned or a phase ran out of order
- PlatformError: The host operating system is not supported
"""

import builtins
from typing import Any, Optional

from subnetbox.commands.constants import ERROR_UNSUPPORTED_PLATFORM


class SubnetboxError(Exception):
    """Base exception class for all subnetbox errors.

    Attributes:
        message: Human-readable error message
        code: Optional error code for programmatic handling
        details: Optional dictionary with additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for serialization."""
        result: dict[str, Any] = {
            "type": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigurationError(SubnetboxError):
    """Configuration-related errors.

    Raised when:
    - A required environment variable is not set
    - The config document is missing, malformed or lacks a path
    - The node port plan assigns the same port twice
    """

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.config_file = config_file
        details = details or {}
        if config_file:
            details["config_file"] = config_file
        super().__init__(
            message, code=code or "CONFIGURATION_ERROR", details=details
        )


class PlatformError(ConfigurationError):
    """Raised when the host platform is not supported."""

    def __init__(self, platform_name: str):
        self.platform_name = platform_name
        super().__init__(
            ERROR_UNSUPPORTED_PLATFORM.format(platform=platform_name),
            code="UNSUPPORTED_PLATFORM",
            details={"platform": platform_name},
        )


class ExternalProcessError(SubnetboxError):
    """Raised when an external command exits with a non-zero status.

    The original return code is kept so the CLI can propagate it as its own
    exit code.
    """

    def __init__(
        self,
        message: str,
        command: Optional[list[str]] = None,
        returncode: int = 1,
        output: str = "",
        details: Optional[dict[str, Any]] = None,
    ):
        self.command = list(command or [])
        self.returncode = returncode
        self.output = output
        details = details or {}
        if self.command:
            details["command"] = " ".join(self.command)
        details["returncode"] = returncode
        super().__init__(message, code="EXTERNAL_PROCESS_FAILED", details=details)


class ExtractionError(SubnetboxError):
    """Raised when an expected value is absent from a tool's output."""

    def __init__(
        self,
        message: str,
        label: Optional[str] = None,
        phase: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.label = label
        self.phase = phase
        details = details or {}
        if label:
            details["label"] = label
        if phase:
            details["phase"] = phase
        super().__init__(message, code="EXTRACTION_FAILED", details=details)


class PollTimeoutError(SubnetboxError, builtins.TimeoutError):
    """Raised when a bounded poll does not observe its condition in time."""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        attempts: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.attempts = attempts
        details = details or {}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(message, code="TIMEOUT", details=details)


class StateError(SubnetboxError):
    """Raised when cluster state is mutated against its rules."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.field = field
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, code="INVALID_STATE", details=details)


def exit_code_for(error: Exception) -> int:
    """Process exit code for a failed run; an external tool's code is propagated."""
    if isinstance(error, ExternalProcessError) and error.returncode:
        return error.returncode
    return 1


__all__ = [
    "SubnetboxError",
    "ConfigurationError",
    "PlatformError",
    "ExternalProcessError",
    "ExtractionError",
    "PollTimeoutError",
    "StateError",
    "exit_code_for",
]

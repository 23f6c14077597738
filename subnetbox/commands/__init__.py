"""
Commands module - All available CLI commands.
"""

from subnetbox.commands.deploy import deploy_command
from subnetbox.commands.errors import (
    ConfigurationError,
    ExternalProcessError,
    ExtractionError,
    PlatformError,
    PollTimeoutError,
    StateError,
    SubnetboxError,
)
from subnetbox.commands.health import health_command
from subnetbox.commands.manager import DockerManager
from subnetbox.commands.teardown import teardown_command

__all__ = [
    # Commands
    "DockerManager",
    "deploy_command",
    "health_command",
    "teardown_command",
    # Error classes
    "SubnetboxError",
    "ConfigurationError",
    "PlatformError",
    "ExternalProcessError",
    "ExtractionError",
    "PollTimeoutError",
    "StateError",
]

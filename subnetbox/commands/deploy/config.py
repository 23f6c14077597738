"""
Deployment configuration - resolved once from CLI arguments and environment.

The resulting DeploymentConfig is frozen and passed explicitly to every phase.
"""

import logging
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from subnetbox.commands.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_HEAD_REF,
    DEFAULT_REMOTE_PARENT_ENDPOINT,
    DEFAULT_VALIDATOR_COUNT,
    ERROR_MISSING_ENV,
    FUNDING_POLL_DELAY,
    FUNDING_POLL_TIMEOUT,
    KEYSTORE_FILE_NAME,
    LOCAL_BOTTOMUP_CHECK_PERIOD,
    LOCAL_CONTRACTS_NETWORK,
    LOCAL_CONTRACTS_RPC_URL,
    LOCAL_MODE_ARGS,
    LOCAL_PARENT_ENDPOINT,
    LOCAL_REQUIRED_TOOLS,
    MODE_LOCAL,
    MODE_REMOTE,
    RELAYER_DIR_NAME,
    RELAYER_LOG_FILE,
    RELAYER_PID_FILE,
    REMOTE_BOTTOMUP_CHECK_PERIOD,
    REMOTE_CONTRACTS_NETWORK,
    REMOTE_CONTRACTS_RPC_URL,
    REQUIRED_TOOLS,
    SUBNET_CONFIRM_DELAY,
    SUBNET_CONFIRM_TIMEOUT,
    SUPPORTED_PLATFORMS,
    VALIDATOR_KEY_FILE,
)
from subnetbox.commands.deploy.state import DeploymentTarget
from subnetbox.commands.errors import ConfigurationError, PlatformError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeploymentConfig:
    """Immutable settings for one deployment run."""

    target: DeploymentTarget
    ipc_folder: Path
    config_folder: Path
    head_ref: Optional[str] = None
    log_level: str = "info"
    supply_source_address: str = ""
    parent_gateway_address: Optional[str] = None
    parent_registry_address: Optional[str] = None
    skip_dependencies: bool = False
    skip_build: bool = False
    validator_count: int = DEFAULT_VALIDATOR_COUNT
    subnet_confirm_timeout: float = SUBNET_CONFIRM_TIMEOUT
    subnet_confirm_delay: float = SUBNET_CONFIRM_DELAY
    funding_timeout: float = FUNDING_POLL_TIMEOUT
    funding_poll_delay: float = FUNDING_POLL_DELAY

    @property
    def is_local(self) -> bool:
        return self.target.is_local

    @property
    def config_file(self) -> Path:
        return self.config_folder / CONFIG_FILE_NAME

    @property
    def keystore_file(self) -> Path:
        return self.config_folder / KEYSTORE_FILE_NAME

    @property
    def relayer_folder(self) -> Path:
        return self.config_folder / RELAYER_DIR_NAME

    @property
    def relayer_pid_file(self) -> Path:
        return self.config_folder / RELAYER_PID_FILE

    @property
    def relayer_log_file(self) -> Path:
        return self.config_folder / RELAYER_LOG_FILE

    def key_path(self, index: int) -> Path:
        return self.config_folder / VALIDATOR_KEY_FILE.format(index=index)

    @property
    def contracts_network(self) -> str:
        return LOCAL_CONTRACTS_NETWORK if self.is_local else REMOTE_CONTRACTS_NETWORK

    @property
    def contracts_rpc_url(self) -> str:
        return LOCAL_CONTRACTS_RPC_URL if self.is_local else REMOTE_CONTRACTS_RPC_URL

    @property
    def bottomup_check_period(self) -> int:
        return LOCAL_BOTTOMUP_CHECK_PERIOD if self.is_local else REMOTE_BOTTOMUP_CHECK_PERIOD

    @property
    def parent_auth_flag(self) -> str:
        # A local parent does not accept an auth token
        if self.is_local or not self.target.auth_token:
            return ""
        return f"--parent-auth-token {self.target.auth_token}"

    @property
    def has_parent_contracts(self) -> bool:
        return bool(self.parent_gateway_address and self.parent_registry_address)


def resolve_config(
    head: Optional[str],
    supply_source_address: Optional[str] = None,
    auth_token: Optional[str] = None,
    ipc_folder: Optional[str] = None,
    config_folder: Optional[str] = None,
    log_level: Optional[str] = None,
    parent_endpoint: Optional[str] = None,
    parent_gateway_address: Optional[str] = None,
    parent_registry_address: Optional[str] = None,
    skip_dependencies: bool = False,
    skip_build: bool = False,
    validator_count: int = DEFAULT_VALIDATOR_COUNT,
) -> DeploymentConfig:
    """
    Build the run's DeploymentConfig.

    Args:
        head: Source branch to deploy, or ``local``/``localnet``. ``None``
            falls back to the default branch.

    Raises:
        ConfigurationError: If a variable required in remote mode is missing,
            or parent contracts are supplied without a supply source
    """
    is_local = head in LOCAL_MODE_ARGS
    if parent_gateway_address and parent_registry_address and not supply_source_address:
        # Supplied contracts skip the supply source deploy, so nothing else provides it
        raise ConfigurationError(ERROR_MISSING_ENV.format(name="SUPPLY_SOURCE_ADDRESS"))

    if is_local:
        auth_token = ""
        head_ref = None
        endpoint = parent_endpoint or LOCAL_PARENT_ENDPOINT
        ipc_path = Path(ipc_folder) if ipc_folder else Path.cwd()
    else:
        if not supply_source_address:
            raise ConfigurationError(ERROR_MISSING_ENV.format(name="SUPPLY_SOURCE_ADDRESS"))
        if not auth_token:
            raise ConfigurationError(ERROR_MISSING_ENV.format(name="PARENT_HTTP_AUTH_TOKEN"))
        head_ref = head or DEFAULT_HEAD_REF
        endpoint = parent_endpoint or DEFAULT_REMOTE_PARENT_ENDPOINT
        ipc_path = Path(ipc_folder) if ipc_folder else Path.home() / "ipc"

    target = DeploymentTarget(
        mode=MODE_LOCAL if is_local else MODE_REMOTE,
        parent_endpoint=endpoint,
        auth_token=auth_token or "",
    )
    config = DeploymentConfig(
        target=target,
        ipc_folder=ipc_path.expanduser().absolute(),
        config_folder=Path(config_folder or Path.home() / ".ipc").expanduser().absolute(),
        head_ref=head_ref,
        log_level=log_level or "info",
        supply_source_address=supply_source_address or "",
        parent_gateway_address=parent_gateway_address or None,
        parent_registry_address=parent_registry_address or None,
        skip_dependencies=skip_dependencies,
        skip_build=skip_build,
        validator_count=validator_count,
    )
    logger.debug("Resolved deployment config: %s", config)
    return config


def check_platform(system: Optional[str] = None) -> str:
    """Return the host OS name, raising PlatformError when unsupported."""
    system = system or platform.system()
    if system not in SUPPORTED_PLATFORMS:
        raise PlatformError(system)
    return system


def check_dependencies(
    config: DeploymentConfig, which: Optional[Callable[[str], Optional[str]]] = None
) -> None:
    """
    Verify every external tool the run needs is on PATH.

    Raises:
        ConfigurationError: Listing all missing tools
    """
    which = which or shutil.which
    tools = list(REQUIRED_TOOLS)
    if config.is_local:
        tools.extend(LOCAL_REQUIRED_TOOLS)
    missing = [tool for tool in tools if which(tool) is None]
    if missing:
        raise ConfigurationError(
            f"Missing dependencies: {', '.join(missing)}",
            code="MISSING_DEPENDENCIES",
            details={"missing": missing},
        )


def home_keystore() -> Path:
    """Keystore a remote deployment copies into the config folder."""
    return Path.home() / KEYSTORE_FILE_NAME


def check_keystore(config: DeploymentConfig) -> None:
    """
    Verify a remote deployment has a keystore to copy.

    Raises:
        ConfigurationError: If ``~/evm_keystore.json`` does not exist
    """
    if config.is_local:
        return
    source = home_keystore()
    if not source.is_file():
        raise ConfigurationError(f"Keystore not found: {source}", config_file=str(source))

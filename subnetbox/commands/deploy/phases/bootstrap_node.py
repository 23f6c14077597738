"""
Bootstrap node phase - start validator 0 and learn its network identity.

Every other validator dials the bootstrap node, so its CometBFT node id and
resolver peer id are scraped from the start-up output and recorded once in
the cluster state.
"""

import logging
from enum import Enum

from subnetbox.commands.constants import NODE_ID_MARKER, RESOLVER_MULTIADDR_MARKER
from subnetbox.commands.deploy.config import DeploymentConfig
from subnetbox.commands.deploy.phases.base import BasePhase
from subnetbox.commands.deploy.state import (
    BootstrapEndpoint,
    ClusterState,
    NodeSpec,
    Phase,
)
from subnetbox.commands.errors import ExtractionError
from subnetbox.commands.extract import (
    extract_following_line,
    peer_id_from_multiaddr,
    require_value,
)
from subnetbox.commands.retry import poll_until
from subnetbox.commands.utils import console, print_section

logger = logging.getLogger(__name__)


class BootstrapStatus(Enum):
    NOT_STARTED = "not-started"
    STARTING = "starting"
    STARTED = "started"
    FAILED = "failed"


def validator_env(
    config: DeploymentConfig, state: ClusterState, node: NodeSpec
) -> dict[str, str]:
    """Variables passed to the ``child-validator`` infra task for ``node``."""
    subnet = state.subnet
    return {
        "NODE_NAME": node.name,
        "PRIVATE_KEY_PATH": str(config.key_path(node.index)),
        "SUBNET_ID": subnet.subnet_id or "",
        "PARENT_ENDPOINT": config.target.parent_endpoint,
        "CMT_P2P_HOST_PORT": str(node.p2p),
        "CMT_RPC_HOST_PORT": str(node.rpc),
        "ETHAPI_HOST_PORT": str(node.eth_api),
        "RESOLVER_HOST_PORT": str(node.resolver),
        "OBJECTS_HOST_PORT": str(node.objects),
        "IROH_RPC_HOST_PORT": str(node.iroh_rpc),
        "FENDERMINT_METRICS_HOST_PORT": str(node.metrics),
        "IROH_METRICS_HOST_PORT": str(node.iroh_metrics),
        "PROMTAIL_AGENT_HOST_PORT": str(node.promtail),
        "PROMTAIL_CONFIG_FOLDER": str(config.config_folder),
        "IROH_CONFIG_FOLDER": f"{config.ipc_folder}/infra/iroh/",
        "PARENT_HTTP_AUTH_TOKEN": config.target.auth_token,
        "PARENT_AUTH_FLAG": config.parent_auth_flag,
        "PARENT_REGISTRY": subnet.registry_address or "",
        "PARENT_GATEWAY": subnet.gateway_address or "",
        "FM_PULL_SKIP": "1",
        "FM_LOG_LEVEL": config.log_level,
    }


def validator_secrets(config: DeploymentConfig) -> tuple[str, ...]:
    return (config.target.auth_token,) if config.target.auth_token else ()


class ValidatorBootstrapper(BasePhase):
    phase = Phase.BOOTSTRAP_UP
    title = "Starting the bootstrap validator node"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.status = BootstrapStatus.NOT_STARTED

    async def execute(self) -> None:
        if not self.config.skip_build:
            self.build_node_image()

        self.announce()
        await self.wait_for_subnet()

        node = self.state.bootstrap_node
        self.status = BootstrapStatus.STARTING
        try:
            output = self.infra.start_validator(
                validator_env(self.config, self.state, node),
                secrets=validator_secrets(self.config),
            )
            endpoint = self.parse_endpoint(output, node)
        except Exception:
            self.status = BootstrapStatus.FAILED
            raise

        self.state.set_bootstrap(endpoint)
        self.status = BootstrapStatus.STARTED
        console.print(
            f"[green]✓ Bootstrap node started. Node id {endpoint.node_id}, "
            f"peer id {endpoint.peer_id}[/green]"
        )
        console.print(f"[cyan]  Bootstrap node endpoint: {endpoint.node_endpoint}[/cyan]")
        console.print(
            f"[cyan]  Bootstrap resolver endpoint: {endpoint.resolver_endpoint}[/cyan]"
        )

    def build_node_image(self) -> None:
        print_section("Rebuilding fendermint docker image")
        fendermint = self.config.ipc_folder / "fendermint"
        self.chain.runner(["make", "clean"], cwd=fendermint)
        self.chain.runner(["make", "docker-build"], cwd=fendermint)

    async def wait_for_subnet(self) -> None:
        """Block until the parent lists the new subnet."""
        subnet = self.state.subnet
        console.print("[yellow]Waiting for the parent to confirm the subnet...[/yellow]")
        await poll_until(
            lambda: subnet.subnet_id in self.chain.subnet_list(subnet.parent_id),
            timeout=self.config.subnet_confirm_timeout,
            delay=self.config.subnet_confirm_delay,
            description=f"subnet {subnet.subnet_id} on the parent",
        )

    def parse_endpoint(self, output: str, node: NodeSpec) -> BootstrapEndpoint:
        node_id = require_value(
            extract_following_line(output, NODE_ID_MARKER), NODE_ID_MARKER, self.label
        )
        multiaddr = require_value(
            extract_following_line(output, RESOLVER_MULTIADDR_MARKER),
            RESOLVER_MULTIADDR_MARKER,
            self.label,
        )
        peer_id = peer_id_from_multiaddr(multiaddr)
        if not peer_id:
            raise ExtractionError(
                f"No peer id in resolver multiaddress {multiaddr!r}",
                label=RESOLVER_MULTIADDR_MARKER,
                phase=self.label,
            )
        return BootstrapEndpoint.from_identity(node_id, peer_id, node)

"""
Cluster state for one deployment run.

Facts discovered by one phase are recorded here and read by the phases that
follow. Nothing in this module is persisted across runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from subnetbox.commands.constants import (
    ANVIL_HOST_PORT,
    BOOTSTRAP_CMT_HOST,
    BOOTSTRAP_RESOLVER_HOST,
    CMT_P2P_BASE_PORT,
    CMT_RPC_BASE_PORT,
    ETHAPI_BASE_PORT,
    FENDERMINT_METRICS_BASE_PORT,
    GRAFANA_HOST_PORT,
    IROH_METRICS_BASE_PORT,
    IROH_RPC_BASE_PORT,
    LOKI_HOST_PORT,
    MODE_LOCAL,
    NODE_PORT_STEP,
    OBJECTS_BASE_PORT,
    PROMETHEUS_HOST_PORT,
    PROMTAIL_AGENT_BASE_PORT,
    RESOLVER_BASE_PORT,
    VALIDATOR_NODE_NAME,
)
from subnetbox.commands.errors import ConfigurationError, StateError


@dataclass(frozen=True)
class DeploymentTarget:
    """Where the subnet's parent lives; fixed once resolved."""

    mode: str
    parent_endpoint: str
    auth_token: str = field(default="", repr=False)

    @property
    def is_local(self) -> bool:
        return self.mode == MODE_LOCAL


@dataclass(frozen=True)
class NodeSpec:
    """Host ports for one validator node."""

    index: int
    p2p: int
    rpc: int
    eth_api: int
    resolver: int
    objects: int
    iroh_rpc: int
    metrics: int
    iroh_metrics: int
    promtail: int

    @classmethod
    def for_index(cls, index: int) -> "NodeSpec":
        offset = index * NODE_PORT_STEP
        return cls(
            index=index,
            p2p=CMT_P2P_BASE_PORT + offset,
            rpc=CMT_RPC_BASE_PORT + offset,
            eth_api=ETHAPI_BASE_PORT + offset,
            resolver=RESOLVER_BASE_PORT + offset,
            objects=OBJECTS_BASE_PORT + index,
            iroh_rpc=IROH_RPC_BASE_PORT + index,
            metrics=FENDERMINT_METRICS_BASE_PORT + index,
            iroh_metrics=IROH_METRICS_BASE_PORT + index,
            promtail=PROMTAIL_AGENT_BASE_PORT + index,
        )

    @property
    def name(self) -> str:
        return VALIDATOR_NODE_NAME.format(index=self.index)

    def ports(self) -> dict[str, int]:
        return {
            "p2p": self.p2p,
            "rpc": self.rpc,
            "eth_api": self.eth_api,
            "resolver": self.resolver,
            "objects": self.objects,
            "iroh_rpc": self.iroh_rpc,
            "metrics": self.metrics,
            "iroh_metrics": self.iroh_metrics,
            "promtail": self.promtail,
        }


CLUSTER_PORTS = {
    "prometheus": PROMETHEUS_HOST_PORT,
    "loki": LOKI_HOST_PORT,
    "grafana": GRAFANA_HOST_PORT,
    "anvil": ANVIL_HOST_PORT,
}


def build_node_specs(count: int) -> list[NodeSpec]:
    """
    Return the static port plan for ``count`` validators.

    Raises:
        ConfigurationError: If any two ports in the plan collide
    """
    if count < 1:
        raise ConfigurationError("At least one validator is required")

    specs = [NodeSpec.for_index(i) for i in range(count)]
    owners: dict[int, str] = {port: name for name, port in CLUSTER_PORTS.items()}
    for spec in specs:
        for port_name, port in spec.ports().items():
            owner = f"{spec.name}.{port_name}"
            if port in owners:
                raise ConfigurationError(
                    f"Port {port} assigned to both {owners[port]} and {owner}",
                    details={"port": port},
                )
            owners[port] = owner
    return specs


@dataclass
class ValidatorIdentity:
    """Key material for one validator. Index 0 is the default signer."""

    index: int
    address: str
    public_key: str
    private_key: str = field(repr=False, default="")
    key_path: Optional[str] = None


@dataclass
class SubnetDescriptor:
    """Subnet facts; each field may be assigned a value exactly once."""

    parent_id: Optional[str] = None
    gateway_address: Optional[str] = None
    registry_address: Optional[str] = None
    supply_source_address: Optional[str] = None
    subnet_id: Optional[str] = None

    def __setattr__(self, name, value):
        current = self.__dict__.get(name)
        if current is not None:
            raise StateError(
                f"'{name}' is already set to {current!r}", field=name
            )
        super().__setattr__(name, value)


@dataclass(frozen=True)
class BootstrapEndpoint:
    """Network identity of the bootstrap node as seen by the other nodes."""

    node_id: str
    peer_id: str
    node_endpoint: str
    resolver_endpoint: str

    @classmethod
    def from_identity(cls, node_id: str, peer_id: str, node: NodeSpec) -> "BootstrapEndpoint":
        return cls(
            node_id=node_id,
            peer_id=peer_id,
            node_endpoint=f"{node_id}@{BOOTSTRAP_CMT_HOST}:{node.p2p}",
            resolver_endpoint=(
                f"/dns/{BOOTSTRAP_RESOLVER_HOST}/tcp/{node.resolver}/p2p/{peer_id}"
            ),
        )


class Phase(Enum):
    TORN_DOWN = 0
    CONFIGURED = 1
    CONTRACTS_DEPLOYED = 2
    SUBNET_CREATED = 3
    BOOTSTRAP_UP = 4
    FOLLOWERS_UP = 5
    FUNDED = 6
    RELAYER_RUNNING = 7

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass
class ClusterState:
    """Everything one run knows about the cluster it is building."""

    target: DeploymentTarget
    nodes: list[NodeSpec]
    subnet: SubnetDescriptor = field(default_factory=SubnetDescriptor)
    validators: list[ValidatorIdentity] = field(default_factory=list)
    bootstrap: Optional[BootstrapEndpoint] = None
    relayer_pid: Optional[int] = None
    phase: Phase = Phase.TORN_DOWN

    @property
    def signer(self) -> ValidatorIdentity:
        if not self.validators:
            raise StateError("No validator identities loaded", field="validators")
        return self.validators[0]

    @property
    def bootstrap_node(self) -> NodeSpec:
        return self.nodes[0]

    @property
    def follower_nodes(self) -> list[NodeSpec]:
        return self.nodes[1:]

    def set_bootstrap(self, endpoint: BootstrapEndpoint) -> None:
        if self.bootstrap is not None:
            raise StateError("Bootstrap endpoint already set", field="bootstrap")
        self.bootstrap = endpoint

    def advance(self, phase: Phase) -> None:
        """Move to ``phase``, which must directly follow the current one."""
        if phase.value != self.phase.value + 1:
            raise StateError(
                f"Cannot move from {self.phase.label} to {phase.label}",
                field="phase",
            )
        self.phase = phase

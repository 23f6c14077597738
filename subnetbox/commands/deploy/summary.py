"""
Deployment summary - endpoints, contracts and accounts of the finished cluster.
"""

import logging
from typing import Optional

import requests
from rich import box
from rich.panel import Panel
from rich.table import Table

from subnetbox.commands.chain import ChainCli
from subnetbox.commands.constants import (
    ANVIL_HOST_PORT,
    FUNDED_ACCOUNT_COUNT,
    GRAFANA_HOST_PORT,
    LOKI_HOST_PORT,
    PROMETHEUS_HOST_PORT,
    SUBNET_GATEWAY_ADDRESS,
    SUBNET_REGISTRY_ADDRESS,
)
from subnetbox.commands.deploy.config import DeploymentConfig
from subnetbox.commands.deploy.state import ClusterState
from subnetbox.commands.errors import ExternalProcessError
from subnetbox.commands.health import chain_id
from subnetbox.commands.keystore import Keystore
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)


def endpoint_rows(state: ClusterState) -> list[tuple[str, str]]:
    rows: list[tuple[str, str]] = []
    for title, attr in (
        ("Object API", "objects"),
        ("Iroh API", "iroh_rpc"),
        ("ETH API", "eth_api"),
        ("CometBFT API", "rpc"),
    ):
        for node in state.nodes:
            rows.append((f"{title} ({node.name})", f"http://localhost:{getattr(node, attr)}"))
    rows.append(("Prometheus API", f"http://localhost:{PROMETHEUS_HOST_PORT}"))
    rows.append(("Loki API", f"http://localhost:{LOKI_HOST_PORT}"))
    rows.append(("Grafana", f"http://localhost:{GRAFANA_HOST_PORT}"))
    return rows


def account_rows(config: DeploymentConfig, state: ClusterState) -> list[tuple[str, str, str]]:
    """Local accounts; the validators' are reserved, the rest are free to use."""
    keystore = Keystore(config.keystore_file)
    validators = len(state.validators)
    count = min(len(keystore.records()), FUNDED_ACCOUNT_COUNT)
    rows = []
    for index, address in enumerate(keystore.addresses(count)):
        label = "reserved" if index < validators else "available"
        rows.append((address, keystore.private_key(index), label))
    return rows


def account_balances(
    config: DeploymentConfig, state: ClusterState, chain: ChainCli
) -> list[tuple[str, str]]:
    """Balances of the default account on the parent and on the subnet.

    A reading that fails shows as ``unknown``; the cluster is already up.
    """
    address = Keystore(config.keystore_file).address(0)
    parent_rpc = f"http://localhost:{ANVIL_HOST_PORT}"
    subnet_rpc = f"http://localhost:{state.bootstrap_node.eth_api}"
    token = state.subnet.supply_source_address

    readings = [("Parent native", lambda: f"{chain.balance(parent_rpc, address):.2f}")]
    if token:
        readings.append(
            ("Parent supply token", lambda: f"{chain.token_balance(parent_rpc, token, address):.0f}")
        )
    readings.append(("Subnet native", lambda: f"{chain.balance(subnet_rpc, address):.2f}"))

    rows = []
    for label, read in readings:
        try:
            rows.append((label, read()))
        except ExternalProcessError as e:
            logger.debug("Balance read for %s failed: %s", label, e)
            rows.append((label, "unknown"))
    return rows


def print_summary(
    config: DeploymentConfig,
    state: ClusterState,
    session: Optional[requests.Session] = None,
    chain: Optional[ChainCli] = None,
) -> None:
    console.print(Panel.fit("[bold green]Subnet deployment ready! 🚀[/bold green]"))

    subnet = state.subnet
    overview = Table(title="Subnet", box=box.ROUNDED, show_header=False)
    overview.add_column("Key", style="cyan")
    overview.add_column("Value", style="green")
    overview.add_row("Subnet ID", subnet.subnet_id or "")
    found_chain_id = chain_id(state.bootstrap_node.eth_api, session=session)
    overview.add_row("Chain ID", str(found_chain_id) if found_chain_id is not None else "unknown")
    overview.add_row("Parent gateway", subnet.gateway_address or "")
    overview.add_row("Parent registry", subnet.registry_address or "")
    overview.add_row("Supply source", subnet.supply_source_address or "")
    overview.add_row("Subnet gateway", SUBNET_GATEWAY_ADDRESS)
    overview.add_row("Subnet registry", SUBNET_REGISTRY_ADDRESS)
    if state.relayer_pid:
        overview.add_row("Relayer PID", str(state.relayer_pid))
    console.print(overview)

    endpoints = Table(title="Endpoints", box=box.ROUNDED)
    endpoints.add_column("Service", style="cyan")
    endpoints.add_column("URL", style="blue")
    for service, url in endpoint_rows(state):
        endpoints.add_row(service, url)
    console.print(endpoints)

    if config.is_local:
        accounts = Table(title="Accounts", box=box.ROUNDED)
        accounts.add_column("Address", style="cyan")
        accounts.add_column("Private key", style="yellow")
        accounts.add_column("Usage")
        for address, private_key, label in account_rows(config, state):
            accounts.add_row(address, private_key, label)
        console.print(accounts)

        if chain is not None:
            balances = Table(title="Default account balances", box=box.ROUNDED, show_header=False)
            balances.add_column("Ledger", style="cyan")
            balances.add_column("Balance", style="green")
            for ledger, amount in account_balances(config, state, chain):
                balances.add_row(ledger, amount)
            console.print(balances)

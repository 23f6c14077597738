"""
Teardown - remove every resource a previous deployment may have left behind.

What gets removed:
   - The checkpoint relayer recorded in ``relayer.pid``
   - The observability containers (prometheus, grafana, loki)
   - Each validator's component containers and the subnet's docker network,
     when a stale config document names a subnet
   - The local anvil parent chain container
   - The config folder itself, which is recreated empty

Anything already absent is skipped, so teardown can run any number of times
in a row.
"""

import logging
import shutil
import sys
from pathlib import Path
from typing import Optional

import click
from rich.markup import escape

from subnetbox.commands.config_utils import ConfigDocument
from subnetbox.commands.constants import (
    ANVIL_NODE_NAME,
    DEFAULT_REMOTE_PARENT_ENDPOINT,
    LOCAL_PARENT_ENDPOINT,
    MAX_VALIDATOR_COUNT,
    MODE_LOCAL,
    MODE_REMOTE,
    PATH_SUBNET_ID,
    VALIDATOR_COMPONENTS,
    VALIDATOR_NODE_NAME,
)
from subnetbox.commands.deploy.config import DeploymentConfig
from subnetbox.commands.deploy.state import DeploymentTarget
from subnetbox.commands.errors import ConfigurationError, SubnetboxError, exit_code_for
from subnetbox.commands.manager import DockerManager
from subnetbox.commands.observability import destroy_observability
from subnetbox.commands.process import terminate_pid_file
from subnetbox.commands.utils import console, print_section

logger = logging.getLogger(__name__)


def validator_container_names(index: int) -> list[str]:
    node = VALIDATOR_NODE_NAME.format(index=index)
    return [f"{node}-{component}" for component in VALIDATOR_COMPONENTS]


def stale_subnet_id(document: ConfigDocument) -> Optional[str]:
    """Return the subnet id recorded by a previous run, if any."""
    if not document.exists():
        return None
    try:
        return document.get(PATH_SUBNET_ID, default=None) or None
    except ConfigurationError as e:
        console.print(f"[yellow]⚠️  Ignoring unreadable stale config: {e}[/yellow]")
        return None


def destroy_validators(manager: DockerManager, validator_count: int) -> list[str]:
    """
    Remove validator containers and return the networks they were attached to.
    """
    networks: list[str] = []
    for index in range(validator_count):
        for name in validator_container_names(index):
            for network in manager.networks_of(name):
                if network not in networks:
                    networks.append(network)
            manager.destroy(name)
    return networks


def teardown(config: DeploymentConfig, manager: Optional[DockerManager] = None) -> None:
    """
    Remove the previous deployment and leave an empty config folder.

    Args:
        config: Resolved deployment configuration
        manager: Docker manager; one is created from the environment if omitted
    """
    print_section("Tearing down previous deployment")
    manager = manager or DockerManager()

    if terminate_pid_file(config.relayer_pid_file):
        console.print("[green]✓ Stopped previous relayer[/green]")

    destroy_observability(manager)

    subnet_id = stale_subnet_id(ConfigDocument(config.config_file))
    networks: list[str] = []
    if subnet_id:
        console.print(f"[cyan]Existing subnet id: {subnet_id}[/cyan]")
        # The previous run may have had more validators than this one
        networks = destroy_validators(manager, MAX_VALIDATOR_COUNT)

    if config.is_local:
        # anvil shares the subnet network, so it goes before the network does
        networks.extend(n for n in manager.networks_of(ANVIL_NODE_NAME) if n not in networks)
        manager.destroy(ANVIL_NODE_NAME)

    for network in networks:
        manager.destroy_network(network)

    shutil.rmtree(config.config_folder, ignore_errors=True)
    config.config_folder.mkdir(parents=True, exist_ok=True)
    logger.debug("Recreated config folder %s", config.config_folder)
    console.print(f"[green]✓ Config folder reset: {config.config_folder}[/green]")


@click.command(name="teardown")
@click.option(
    "--config-folder",
    envvar="IPC_CONFIG_FOLDER",
    type=click.Path(file_okay=False),
    help="Config folder (default ~/.ipc)",
)
@click.option("--local", is_flag=True, help="Also remove the local anvil parent")
def teardown_command(config_folder, local):
    """Remove a previous deployment and reset its config folder."""
    target = DeploymentTarget(
        mode=MODE_LOCAL if local else MODE_REMOTE,
        parent_endpoint=LOCAL_PARENT_ENDPOINT if local else DEFAULT_REMOTE_PARENT_ENDPOINT,
    )
    config = DeploymentConfig(
        target=target,
        ipc_folder=Path.cwd(),
        config_folder=Path(config_folder or Path.home() / ".ipc").expanduser().absolute(),
    )
    try:
        teardown(config)
    except SubnetboxError as e:
        console.print(f"[red]✗ Teardown failed: {escape(str(e))}[/red]")
        sys.exit(exit_code_for(e))
    console.print("[green]✓ Teardown complete[/green]")

"""
Deploy command - bring up a subnet with its validators, observability stack
and checkpoint relayer.
"""

import sys

import click
from rich.markup import escape

from subnetbox.commands.constants import (
    DEFAULT_VALIDATOR_COUNT,
    MAX_VALIDATOR_COUNT,
    MIN_VALIDATOR_COUNT,
)
from subnetbox.commands.deploy.config import resolve_config
from subnetbox.commands.deploy.pipeline import run_deployment_sync
from subnetbox.commands.errors import SubnetboxError, exit_code_for
from subnetbox.commands.utils import console


@click.command(name="deploy")
@click.argument("head", required=False)
@click.option(
    "--supply-source-address",
    envvar="SUPPLY_SOURCE_ADDRESS",
    help="ERC20 supply source on the parent (required for a remote parent)",
)
@click.option(
    "--auth-token",
    envvar="PARENT_HTTP_AUTH_TOKEN",
    help="Bearer token for the parent RPC (required for a remote parent)",
)
@click.option(
    "--ipc-folder",
    envvar="IPC_FOLDER",
    type=click.Path(file_okay=False),
    help="Source tree (default ~/ipc, or the current directory for local)",
)
@click.option(
    "--config-folder",
    envvar="IPC_CONFIG_FOLDER",
    type=click.Path(file_okay=False),
    help="Config folder (default ~/.ipc)",
)
@click.option(
    "--log-level", envvar="FM_LOG_LEVEL", default="info", help="Node log level"
)
@click.option("--parent-endpoint", envvar="PARENT_ENDPOINT", help="Parent RPC URL")
@click.option(
    "--parent-gateway-address",
    envvar="PARENT_GATEWAY_ADDRESS",
    help="Existing parent gateway; skips contract deployment with --parent-registry-address",
)
@click.option(
    "--parent-registry-address",
    envvar="PARENT_REGISTRY_ADDRESS",
    help="Existing parent registry",
)
@click.option(
    "--skip-dependencies",
    envvar="SKIP_DEPENDENCIES",
    is_flag=True,
    help="Do not check for required tools",
)
@click.option(
    "--skip-build",
    envvar="SKIP_BUILD",
    is_flag=True,
    help="Do not build contracts, ipc-cli or the node image",
)
@click.option(
    "--validators",
    type=click.IntRange(MIN_VALIDATOR_COUNT, MAX_VALIDATOR_COUNT),
    default=DEFAULT_VALIDATOR_COUNT,
    show_default=True,
    help="Number of validator nodes",
)
def deploy_command(
    head,
    supply_source_address,
    auth_token,
    ipc_folder,
    config_folder,
    log_level,
    parent_endpoint,
    parent_gateway_address,
    parent_registry_address,
    skip_dependencies,
    skip_build,
    validators,
):
    """Deploy a subnet from HEAD (a branch, or 'local'/'localnet' for an anvil parent)."""
    try:
        config = resolve_config(
            head,
            supply_source_address=supply_source_address,
            auth_token=auth_token,
            ipc_folder=ipc_folder,
            config_folder=config_folder,
            log_level=log_level,
            parent_endpoint=parent_endpoint,
            parent_gateway_address=parent_gateway_address,
            parent_registry_address=parent_registry_address,
            skip_dependencies=skip_dependencies,
            skip_build=skip_build,
            validator_count=validators,
        )
        if config.head_ref:
            console.print(
                f"[yellow]Deploying from {config.head_ref}; make sure the source tree "
                f"at {config.ipc_folder} is checked out there[/yellow]"
            )
        run_deployment_sync(config)
    except SubnetboxError as e:
        console.print(f"[red]✗ Deployment failed: {escape(str(e))}[/red]")
        sys.exit(exit_code_for(e))
    except Exception as e:
        console.print(f"[red]✗ Unexpected error: {escape(str(e))}[/red]")
        sys.exit(1)

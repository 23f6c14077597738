#!/usr/bin/env python3
"""
Subnetbox CLI
A Python CLI tool for deploying and tearing down subnet validator clusters.
"""

import logging

import click

from subnetbox import __version__
from subnetbox.commands import deploy_command, health_command, teardown_command


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """Subnetbox CLI - Deploy subnets with their validators and relayer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


cli.add_command(deploy_command)
cli.add_command(health_command)
cli.add_command(teardown_command)


def main():
    """Main entry point for the subnetbox CLI."""
    cli()


if __name__ == "__main__":
    main()

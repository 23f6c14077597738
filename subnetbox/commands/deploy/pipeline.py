"""
Deployment pipeline - runs the phases in order against one ClusterState.

This module handles:
- Preflight checks (host platform, required tools)
- Tearing down the previous deployment
- Running each phase and advancing the cluster phase after it
- Starting the observability stack and verifying node health
- Printing the deployment summary

A failure is reported with the label of the phase it happened in and
re-raised. Nothing is rolled back; the next run starts with a teardown.
"""

import asyncio
import logging
from typing import Optional

import requests
from rich.markup import escape

from subnetbox.commands.chain import ChainCli
from subnetbox.commands.constants import BOOTSTRAP_RESOLVER_HOST
from subnetbox.commands.deploy.config import (
    DeploymentConfig,
    check_dependencies,
    check_keystore,
    check_platform,
)
from subnetbox.commands.deploy.phases import (
    BasePhase,
    ContractDeployer,
    FollowerJoiner,
    FundingCoordinator,
    PreparePhase,
    RelayerSupervisor,
    SubnetCreator,
    ValidatorBootstrapper,
)
from subnetbox.commands.deploy.state import ClusterState, build_node_specs
from subnetbox.commands.deploy.summary import print_summary
from subnetbox.commands.health import verify_health
from subnetbox.commands.infra import InfraTasks
from subnetbox.commands.manager import DockerManager
from subnetbox.commands.observability import start_observability
from subnetbox.commands.teardown import teardown
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)


def preflight(config: DeploymentConfig) -> None:
    """Fail before touching any resource if the host cannot run the deployment."""
    check_platform()
    check_keystore(config)
    if config.skip_dependencies:
        console.print("[yellow]SKIP_DEPENDENCIES set, not checking tools[/yellow]")
        return
    check_dependencies(config)
    console.print("[green]✓ All required tools found[/green]")


class DeploymentPipeline:
    """Sequences the deployment phases for one run."""

    def __init__(
        self,
        config: DeploymentConfig,
        manager: Optional[DockerManager] = None,
        chain: Optional[ChainCli] = None,
        infra: Optional[InfraTasks] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.manager = manager
        self.chain = chain or ChainCli(config.ipc_folder)
        self.infra = infra or InfraTasks(config.ipc_folder)
        self.session = session
        self.state = ClusterState(
            target=config.target, nodes=build_node_specs(config.validator_count)
        )

    def _phase(self, phase_class: type, **kwargs) -> BasePhase:
        return phase_class(
            self.config, self.state, chain=self.chain, infra=self.infra, **kwargs
        )

    async def run_phase(self, phase: BasePhase) -> None:
        try:
            await phase.execute()
        except Exception as e:
            console.print(f"[red]{escape(f'[{phase.label}] ✗ {e}')}[/red]")
            raise
        self.state.advance(phase.phase)
        console.print(f"[green]{escape(f'[{phase.label}]')} ✓ done[/green]")

    async def run(self) -> ClusterState:
        if self.manager is None:
            self.manager = DockerManager()
        teardown(self.config, self.manager)

        await self.run_phase(self._phase(PreparePhase))
        await self.run_phase(self._phase(ContractDeployer))
        await self.run_phase(self._phase(SubnetCreator))

        bootstrapper = self._phase(ValidatorBootstrapper)
        await self.run_phase(bootstrapper)
        await self.run_phase(
            self._phase(FollowerJoiner, bootstrap_status=bootstrapper.status)
        )

        self.start_observability()
        verify_health(self.state.nodes, session=self.session)

        await self.run_phase(self._phase(FundingCoordinator))
        await self.run_phase(self._phase(RelayerSupervisor))

        print_summary(self.config, self.state, session=self.session, chain=self.chain)
        return self.state

    def start_observability(self) -> None:
        # The stack joins the validators' network so prometheus can scrape them
        networks = self.manager.networks_of(BOOTSTRAP_RESOLVER_HOST)
        network = networks[0] if networks else None
        try:
            start_observability(self.manager, self.config.config_folder, network)
        except Exception as e:
            console.print(f"[red]{escape(f'[observability] ✗ {e}')}[/red]")
            raise


async def run_deployment(config: DeploymentConfig, **kwargs) -> ClusterState:
    """
    Run a full deployment.

    Keyword arguments are passed to DeploymentPipeline.

    Returns:
        The final cluster state
    """
    preflight(config)
    return await DeploymentPipeline(config, **kwargs).run()


def run_deployment_sync(config: DeploymentConfig, **kwargs) -> ClusterState:
    """Synchronous wrapper for run_deployment."""
    return asyncio.run(run_deployment(config, **kwargs))

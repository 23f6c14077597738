"""
Followers phase - start validators 1..N-1 concurrently against the bootstrap node.
"""

import asyncio
import logging

from subnetbox.commands.deploy.phases.base import BasePhase
from subnetbox.commands.deploy.phases.bootstrap_node import (
    BootstrapStatus,
    validator_env,
    validator_secrets,
)
from subnetbox.commands.deploy.state import NodeSpec, Phase
from subnetbox.commands.errors import StateError
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)


class FollowerJoiner(BasePhase):
    phase = Phase.FOLLOWERS_UP
    title = "Starting the other validator nodes"

    def __init__(self, *args, bootstrap_status: BootstrapStatus, **kwargs):
        super().__init__(*args, **kwargs)
        self.bootstrap_status = bootstrap_status

    async def execute(self) -> None:
        if self.bootstrap_status is not BootstrapStatus.STARTED or self.state.bootstrap is None:
            raise StateError(
                f"Bootstrap node is {self.bootstrap_status.value}, followers cannot join",
                field="bootstrap",
            )
        self.announce()

        nodes = self.state.follower_nodes
        # The first failure propagates; remaining starts run to completion
        # because their threads cannot be cancelled.
        await asyncio.gather(
            *[asyncio.to_thread(self.start_follower, node) for node in nodes]
        )
        console.print(f"[green]✓ {len(nodes)} follower node(s) started[/green]")

    def start_follower(self, node: NodeSpec) -> str:
        bootstrap = self.state.bootstrap
        env = validator_env(self.config, self.state, node)
        env["BOOTSTRAPS"] = bootstrap.node_endpoint
        env["RESOLVER_BOOTSTRAPS"] = bootstrap.resolver_endpoint
        logger.debug("Starting %s against %s", node.name, bootstrap.node_endpoint)
        output = self.infra.start_validator(env, secrets=validator_secrets(self.config))
        console.print(f"[green]✓ {node.name} started[/green]")
        return output

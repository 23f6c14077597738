"""
Funding phase - move the local accounts' supply tokens into the subnet.

Top-down messages take minutes to land on a local parent, so the phase
polls the balance of the last funded account until it is non-zero.
"""

import logging

from subnetbox.commands.constants import FUND_TOKEN_AMOUNT, FUNDED_ACCOUNT_COUNT
from subnetbox.commands.deploy.phases.base import BasePhase
from subnetbox.commands.deploy.state import Phase
from subnetbox.commands.errors import ExternalProcessError
from subnetbox.commands.retry import poll_until, with_retry
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)


class FundingCoordinator(BasePhase):
    phase = Phase.FUNDED
    title = "Moving account funds into the subnet"

    async def execute(self) -> None:
        if not self.config.is_local:
            console.print("[cyan]Remote parent, skipping account funding[/cyan]")
            return

        self.announce()
        subnet_id = self.state.subnet.subnet_id
        addresses = self.keystore.addresses(FUNDED_ACCOUNT_COUNT)
        for address in addresses:
            self.fund(subnet_id, address)

        console.print("[yellow]Waiting for deposits to process...[/yellow]")
        last = addresses[-1]
        rpc_url = f"http://localhost:{self.state.bootstrap_node.eth_api}"
        balance = await poll_until(
            lambda: self.read_balance(rpc_url, last),
            timeout=self.config.funding_timeout,
            delay=self.config.funding_poll_delay,
            description=f"subnet balance of {last}",
        )
        console.print(
            f"[green]✓ Deposited supply tokens for {len(addresses)} accounts "
            f"(last balance {balance})[/green]"
        )

    def fund(self, subnet_id: str, address: str) -> None:
        self.chain.fund_with_token(subnet_id, address, FUND_TOKEN_AMOUNT)
        logger.debug("Funded %s in %s", address, subnet_id)

    @with_retry(exceptions=(ExternalProcessError,), max_attempts=3, delay=1.0)
    def read_balance(self, rpc_url: str, address: str) -> float:
        # The eth api may refuse connections for a moment after start-up
        return self.chain.balance(rpc_url, address)

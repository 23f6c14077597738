"""
Contracts phase - deploy the parent gateway and registry, and on a local
parent the ERC20 supply source token.
"""

import logging

from subnetbox.commands.constants import (
    ANVIL_HOST_PORT,
    FUNDED_ACCOUNT_COUNT,
    GATEWAY_LABEL,
    MINT_TOKEN_AMOUNT,
    PATH_PARENT_GATEWAY,
    PATH_PARENT_REGISTRY,
    REGISTRY_LABEL,
    SUPPLY_SOURCE_MARKER,
)
from subnetbox.commands.deploy.phases.base import BasePhase
from subnetbox.commands.deploy.state import Phase
from subnetbox.commands.extract import (
    extract_inline_token,
    extract_labeled_value,
    require_value,
)
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)

SUPPLY_SOURCE_DIR = "hoku-contracts"


class ContractDeployer(BasePhase):
    phase = Phase.CONTRACTS_DEPLOYED
    title = "Deploying IPC contracts"

    async def execute(self) -> None:
        self.announce()
        subnet = self.state.subnet

        if self.config.has_parent_contracts:
            console.print("[yellow]Using supplied parent contract addresses[/yellow]")
            subnet.gateway_address = self.config.parent_gateway_address
            subnet.registry_address = self.config.parent_registry_address
            if self.config.supply_source_address:
                subnet.supply_source_address = self.config.supply_source_address
        else:
            gateway, registry = self.deploy_parent_contracts()
            subnet.gateway_address = gateway
            subnet.registry_address = registry
            if self.config.is_local:
                subnet.supply_source_address = self.deploy_supply_source()
            else:
                subnet.supply_source_address = self.config.supply_source_address

        console.print(f"[cyan]Parent gateway address: {subnet.gateway_address}[/cyan]")
        console.print(f"[cyan]Parent registry address: {subnet.registry_address}[/cyan]")
        console.print(f"[cyan]Supply source address: {subnet.supply_source_address}[/cyan]")

        self.document.set(PATH_PARENT_GATEWAY, subnet.gateway_address)
        self.document.set(PATH_PARENT_REGISTRY, subnet.registry_address)

    def deploy_parent_contracts(self) -> tuple[str, str]:
        self.chain.install_contract_deps()
        output = self.chain.deploy_contracts(
            self.config.contracts_network,
            self.config.contracts_rpc_url,
            self.state.signer.private_key,
        )
        logger.debug("deploy-ipc output:\n%s", output)

        gateway = require_value(
            extract_labeled_value(output, GATEWAY_LABEL), GATEWAY_LABEL, self.label
        )
        registry = require_value(
            extract_labeled_value(output, REGISTRY_LABEL), REGISTRY_LABEL, self.label
        )
        console.print("[green]✓ Parent contracts deployed[/green]")
        return gateway, registry

    def deploy_supply_source(self) -> str:
        """Deploy the supply source token and mint a balance to every account."""
        workdir = self.config.ipc_folder / SUPPLY_SOURCE_DIR
        rpc_url = f"http://localhost:{ANVIL_HOST_PORT}"
        private_key = self.state.signer.private_key

        # Without a clean, same-named contracts fail upgrade safety validation
        self.chain.forge_clean(workdir)
        if not self.config.skip_build:
            self.chain.forge_install(workdir)

        output = self.chain.deploy_supply_source(workdir, rpc_url, private_key)
        logger.debug("supply source deploy output:\n%s", output)
        token = require_value(
            extract_inline_token(output, SUPPLY_SOURCE_MARKER),
            SUPPLY_SOURCE_MARKER,
            self.label,
        )

        for address in self.keystore.addresses(FUNDED_ACCOUNT_COUNT):
            self.chain.mint(token, address, MINT_TOKEN_AMOUNT, rpc_url, private_key)
        console.print(
            f"[green]✓ Minted supply tokens to {FUNDED_ACCOUNT_COUNT} accounts on anvil[/green]"
        )
        return token

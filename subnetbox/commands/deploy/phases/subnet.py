"""
Subnet phase - create the child subnet on the parent and set validator power.
"""

import logging

from subnetbox.commands.constants import (
    ERROR_MISSING_ENV,
    FEDERATED_VALIDATOR_POWER,
    PATH_ROOT_ID,
    PATH_SUBNET_ID,
    SUBNET_ID_MARKER,
)
from subnetbox.commands.deploy.phases.base import BasePhase
from subnetbox.commands.deploy.state import Phase
from subnetbox.commands.errors import ConfigurationError
from subnetbox.commands.extract import extract_subnet_id, require_value
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)


class SubnetCreator(BasePhase):
    phase = Phase.SUBNET_CREATED
    title = "Creating a child subnet"

    async def execute(self) -> None:
        self.announce()
        subnet = self.state.subnet
        if not subnet.supply_source_address:
            raise ConfigurationError(ERROR_MISSING_ENV.format(name="SUPPLY_SOURCE_ADDRESS"))

        subnet.parent_id = str(self.document.get(PATH_ROOT_ID)).strip('"')
        console.print(f"[cyan]Using root: {subnet.parent_id}[/cyan]")

        output = self.chain.subnet_create(
            self.state.signer.address,
            subnet.parent_id,
            self.config.bottomup_check_period,
            subnet.supply_source_address,
        )
        logger.debug("subnet create output:\n%s", output)
        subnet.subnet_id = require_value(
            extract_subnet_id(output), SUBNET_ID_MARKER, self.label
        )
        console.print(f"[green]✓ Created new subnet id: {subnet.subnet_id}[/green]")
        self.document.set(PATH_SUBNET_ID, subnet.subnet_id)

        validators = self.state.validators
        self.chain.set_federated_power(
            self.state.signer.address,
            subnet.subnet_id,
            [v.address for v in validators],
            [v.public_key for v in validators],
            FEDERATED_VALIDATOR_POWER,
        )
        console.print(
            f"[green]✓ Federated power {FEDERATED_VALIDATOR_POWER} set for "
            f"{len(validators)} validators[/green]"
        )

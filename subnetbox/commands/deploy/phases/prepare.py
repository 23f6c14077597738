"""
Prepare phase - materialize the config folder, keystore and validator keys.

On a local parent this also starts the anvil chain that every later phase
talks to.
"""

import logging
import os
import shutil
from pathlib import Path

from subnetbox.commands.constants import (
    ANVIL_HOST_PORT,
    LOCAL_CONFIG_TEMPLATE,
    LOCAL_SUBNET_ID,
    OBSERVABILITY_CONFIG_FILES,
    PATH_PARENT_AUTH_TOKEN,
    REMOTE_CONFIG_TEMPLATE,
)
from subnetbox.commands.deploy.config import home_keystore
from subnetbox.commands.deploy.phases.base import BasePhase
from subnetbox.commands.deploy.state import Phase, ValidatorIdentity
from subnetbox.commands.errors import ConfigurationError
from subnetbox.commands.keystore import Keystore, anvil_keystore_records
from subnetbox.commands.utils import console, print_section

logger = logging.getLogger(__name__)

KEY_FILE_MODE = 0o600


def copy_into(source: Path, folder: Path) -> Path:
    """Copy ``source`` into ``folder`` keeping its file name."""
    if not source.is_file():
        raise ConfigurationError(f"Required file not found: {source}", config_file=str(source))
    target = folder / source.name
    shutil.copy2(source, target)
    logger.debug("Copied %s -> %s", source, target)
    return target


class PreparePhase(BasePhase):
    phase = Phase.CONFIGURED
    title = "Preparing configuration"

    async def execute(self) -> None:
        self.announce()
        self.copy_configs()
        self.seed_keystore()

        if self.config.skip_build:
            console.print("[yellow]SKIP_BUILD set, skipping builds[/yellow]")
        else:
            self.build()

        if self.config.is_local:
            self.start_local_parent()

        self.load_identities()
        self.document.set(PATH_PARENT_AUTH_TOKEN, self.config.target.auth_token, log=False)

    def copy_configs(self) -> None:
        ipc_folder = self.config.ipc_folder
        config_folder = self.config.config_folder
        config_folder.mkdir(parents=True, exist_ok=True)

        template = LOCAL_CONFIG_TEMPLATE if self.config.is_local else REMOTE_CONFIG_TEMPLATE
        console.print(
            f"[cyan]Using {'local' if self.config.is_local else 'calibration'} net config[/cyan]"
        )
        copy_into(ipc_folder / template, config_folder)
        for relative in OBSERVABILITY_CONFIG_FILES:
            copy_into(ipc_folder / relative, config_folder)

    def seed_keystore(self) -> None:
        """
        Write the keystore the validators sign with.

        A local parent uses the preloaded anvil accounts in a fixed order;
        ``ipc-cli wallet import`` would reorder them.
        """
        if self.config.is_local:
            self.keystore.write(anvil_keystore_records())
            console.print("[green]✓ Wrote anvil keystore[/green]")
            return

        source = home_keystore()
        if not source.is_file():
            raise ConfigurationError(
                f"Keystore not found: {source}", config_file=str(source)
            )
        Keystore(source).copy_to(self.config.keystore_file)
        console.print(f"[green]✓ Copied keystore from {source}[/green]")

    def build(self) -> None:
        ipc_folder = self.config.ipc_folder
        print_section("Building ipc contracts")
        self.chain.runner(["make", "build"], cwd=ipc_folder / "contracts")
        print_section("Building ipc-cli")
        self.chain.runner(["make", "install"], cwd=ipc_folder / "ipc")
        if self.config.is_local:
            print_section("Pulling foundry image")
            self.infra.anvil_pull()

    def start_local_parent(self) -> None:
        # The subnet id is fixed on a local parent and names the docker
        # network before the subnet exists.
        self.infra.anvil_start(LOCAL_SUBNET_ID, ANVIL_HOST_PORT)
        console.print(f"[green]✓ Anvil running on port {ANVIL_HOST_PORT}[/green]")

    def load_identities(self) -> None:
        count = self.config.validator_count
        console.print(f"[cyan]Using {count} addresses in wallet...[/cyan]")
        for index, address in enumerate(self.keystore.addresses(count)):
            public_key = self.chain.wallet_pub_key(address)
            private_key = self.chain.wallet_export(address)
            key_path = self.config.key_path(index)
            key_path.write_text(private_key, encoding="utf-8")
            os.chmod(key_path, KEY_FILE_MODE)
            self.state.validators.append(
                ValidatorIdentity(
                    index=index,
                    address=address,
                    public_key=public_key,
                    private_key=private_key,
                    key_path=str(key_path),
                )
            )
            console.print(f"[cyan]  Wallet {index} address: {address}[/cyan]")
        console.print(f"[green]✓ Default wallet address: {self.state.signer.address}[/green]")

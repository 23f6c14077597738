"""
Relayer phase - run the checkpoint relayer in the background.

``ipc-cli checkpoint relayer`` rewrites the keystore it is given, reordering
its records. The relayer therefore runs against a private config folder with
its own copy of the config document and keystore, and the shared keystore
keeps the order every other phase relies on.
"""

import logging
from pathlib import Path

from subnetbox.commands.chain import ChainCli
from subnetbox.commands.config_utils import ConfigDocument
from subnetbox.commands.constants import CONFIG_FILE_NAME, KEYSTORE_FILE_NAME, PATH_KEYSTORE
from subnetbox.commands.deploy.phases.base import BasePhase
from subnetbox.commands.deploy.state import Phase
from subnetbox.commands.process import launch_detached, save_pid, terminate_pid_file
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)


class RelayerSupervisor(BasePhase):
    phase = Phase.RELAYER_RUNNING
    title = "Starting relayer process (in the background)"

    async def execute(self) -> None:
        self.announce()
        pid_file = self.config.relayer_pid_file
        if terminate_pid_file(pid_file):
            console.print("[yellow]Stopped existing relayer[/yellow]")

        config_path = self.prepare_relayer_folder()
        relayer_chain = ChainCli(
            self.config.ipc_folder, config_path=config_path, binary=self.chain.binary
        )
        args = relayer_chain.relayer_command(
            self.state.subnet.subnet_id, self.state.signer.address
        )
        pid = launch_detached(
            args, self.config.relayer_log_file, cwd=self.config.config_folder
        )
        save_pid(pid_file, pid)
        self.state.relayer_pid = pid
        console.print(
            f"[green]✓ Relayer running with PID {pid}, "
            f"logging to {self.config.relayer_log_file}[/green]"
        )

    def prepare_relayer_folder(self) -> Path:
        """
        Give the relayer its own config document and keystore copy.

        Returns:
            Path of the relayer's config document
        """
        folder = self.config.relayer_folder
        folder.mkdir(parents=True, exist_ok=True)

        self.keystore.copy_to(folder / KEYSTORE_FILE_NAME)
        document = ConfigDocument(folder / CONFIG_FILE_NAME)
        document.path.write_text(
            self.config.config_file.read_text(encoding="utf-8"), encoding="utf-8"
        )
        document.set(PATH_KEYSTORE, str(folder), log=False)
        logger.debug("Relayer config folder ready at %s", folder)
        return document.path

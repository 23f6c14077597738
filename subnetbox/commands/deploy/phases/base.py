"""
Base phase class for all deployment phases.
"""

import logging
from typing import Optional

from subnetbox.commands.chain import ChainCli
from subnetbox.commands.config_utils import ConfigDocument
from subnetbox.commands.deploy.config import DeploymentConfig
from subnetbox.commands.deploy.state import ClusterState, Phase
from subnetbox.commands.infra import InfraTasks
from subnetbox.commands.keystore import Keystore
from subnetbox.commands.utils import print_section

logger = logging.getLogger(__name__)


class BasePhase:
    """
    One step of the deployment sequence.

    Subclasses set ``phase`` to the Phase reached when ``execute`` returns and
    ``title`` to the banner printed before it runs.
    """

    phase: Phase
    title: str = ""

    def __init__(
        self,
        config: DeploymentConfig,
        state: ClusterState,
        chain: Optional[ChainCli] = None,
        infra: Optional[InfraTasks] = None,
    ):
        self.config = config
        self.state = state
        self.chain = chain or ChainCli(config.ipc_folder)
        self.infra = infra or InfraTasks(config.ipc_folder)

    @property
    def label(self) -> str:
        return self.phase.label

    @property
    def document(self) -> ConfigDocument:
        return ConfigDocument(self.config.config_file)

    @property
    def keystore(self) -> Keystore:
        return Keystore(self.config.keystore_file)

    def announce(self) -> None:
        if self.title:
            print_section(self.title)

    async def execute(self) -> None:
        raise NotImplementedError

"""
Deployment phases, in the order the pipeline runs them.
"""

from subnetbox.commands.deploy.phases.base import BasePhase
from subnetbox.commands.deploy.phases.bootstrap_node import (
    BootstrapStatus,
    ValidatorBootstrapper,
)
from subnetbox.commands.deploy.phases.contracts import ContractDeployer
from subnetbox.commands.deploy.phases.followers import FollowerJoiner
from subnetbox.commands.deploy.phases.funding import FundingCoordinator
from subnetbox.commands.deploy.phases.prepare import PreparePhase
from subnetbox.commands.deploy.phases.relayer import RelayerSupervisor
from subnetbox.commands.deploy.phases.subnet import SubnetCreator

__all__ = [
    "BasePhase",
    "BootstrapStatus",
    "ContractDeployer",
    "FollowerJoiner",
    "FundingCoordinator",
    "PreparePhase",
    "RelayerSupervisor",
    "SubnetCreator",
    "ValidatorBootstrapper",
]

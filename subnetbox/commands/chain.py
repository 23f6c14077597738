"""
Chain CLI - thin wrapper around ipc-cli, the contract build tooling, forge and cast.

Every method returns the tool's raw output (or a value parsed from it) and
raises ExternalProcessError when the tool exits non-zero.
"""

from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from subnetbox.commands.constants import (
    SUBNET_ACTIVE_VALIDATORS_LIMIT,
    SUBNET_MIN_VALIDATOR_STAKE,
    SUBNET_MIN_VALIDATORS,
    SUBNET_PERMISSION_MODE,
    SUBNET_SUPPLY_SOURCE_KIND,
)
from subnetbox.commands.errors import ExternalProcessError
from subnetbox.commands.process import run_command


class ChainCli:
    """Invokes the chain tooling against one config folder."""

    def __init__(
        self,
        ipc_folder: Union[Path, str],
        config_path: Optional[Union[Path, str]] = None,
        binary: str = "ipc-cli",
        runner: Callable[..., str] = run_command,
    ):
        self.ipc_folder = Path(ipc_folder)
        self.config_path = Path(config_path) if config_path else None
        self.binary = binary
        self.runner = runner

    def ipc_args(self, *args: str) -> list[str]:
        """Build an ipc-cli invocation bound to this config file."""
        cmd = [self.binary]
        if self.config_path:
            cmd.extend(["--config-path", str(self.config_path)])
        cmd.extend(args)
        return cmd

    def _ipc(self, *args: str) -> str:
        return self.runner(self.ipc_args(*args))

    # Contracts

    def install_contract_deps(self) -> str:
        return self.runner(["npm", "install"], cwd=self.ipc_folder / "contracts")

    def deploy_contracts(self, network: str, rpc_url: str, private_key: str) -> str:
        """Deploy gateway and registry contracts; returns the tool output."""
        return self.runner(
            ["make", "deploy-ipc", f"NETWORK={network}"],
            cwd=self.ipc_folder / "contracts",
            env={"RPC_URL": rpc_url, "PRIVATE_KEY": private_key},
            secrets=(private_key,),
        )

    # Subnets

    def subnet_create(
        self,
        signer: str,
        parent_id: str,
        bottomup_check_period: int,
        supply_source_address: str,
    ) -> str:
        return self._ipc(
            "subnet",
            "create",
            "--from",
            signer,
            "--parent",
            parent_id,
            "--min-validators",
            str(SUBNET_MIN_VALIDATORS),
            "--min-validator-stake",
            str(SUBNET_MIN_VALIDATOR_STAKE),
            "--bottomup-check-period",
            str(bottomup_check_period),
            "--active-validators-limit",
            str(SUBNET_ACTIVE_VALIDATORS_LIMIT),
            "--permission-mode",
            SUBNET_PERMISSION_MODE,
            "--supply-source-kind",
            SUBNET_SUPPLY_SOURCE_KIND,
            "--supply-source-address",
            supply_source_address,
        )

    def subnet_list(self, parent_id: str) -> str:
        return self._ipc("subnet", "list", "--parent", parent_id)

    def set_federated_power(
        self,
        signer: str,
        subnet_id: str,
        addresses: Sequence[str],
        public_keys: Sequence[str],
        power: int,
    ) -> str:
        return self._ipc(
            "subnet",
            "set-federated-power",
            "--from",
            signer,
            "--subnet",
            subnet_id,
            "--validator-addresses",
            *addresses,
            "--validator-pubkeys",
            *public_keys,
            "--validator-power",
            *[str(power)] * len(addresses),
        )

    # Wallet

    def wallet_pub_key(self, address: str) -> str:
        output = self._ipc(
            "wallet", "pub-key", "--wallet-type", "evm", "--address", address
        )
        return output.strip().strip('"')

    def wallet_export(self, address: str) -> str:
        output = self._ipc(
            "wallet", "export", "--wallet-type", "evm", "--address", address, "--hex"
        )
        return output.strip().strip('"')

    # Funding

    def fund_with_token(self, subnet_id: str, address: str, amount: str) -> str:
        return self._ipc(
            "cross-msg",
            "fund-with-token",
            "--subnet",
            subnet_id,
            "--from",
            address,
            "--approve",
            amount,
        )

    def balance(self, rpc_url: str, address: str) -> float:
        """Native balance of ``address`` in whole tokens."""
        output = self.runner(["cast", "balance", "--rpc-url", rpc_url, "--ether", address])
        return _parse_amount(output)

    def token_balance(self, rpc_url: str, token: str, address: str) -> float:
        """ERC20 balance of ``address`` in the token's base units."""
        output = self.runner(["cast", "balance", "--rpc-url", rpc_url, "--erc20", token, address])
        return _parse_amount(output)

    # Supply source (local parent only)

    def forge_clean(self, workdir: Union[Path, str]) -> str:
        return self.runner(["forge", "clean"], cwd=workdir)

    def forge_install(self, workdir: Union[Path, str]) -> str:
        return self.runner(["forge", "install"], cwd=workdir)

    def deploy_supply_source(
        self, workdir: Union[Path, str], rpc_url: str, private_key: str
    ) -> str:
        key = private_key if private_key.startswith("0x") else f"0x{private_key}"
        return self.runner(
            [
                "forge",
                "script",
                "script/Hoku.s.sol",
                "--tc",
                "DeployScript",
                "0",
                "--sig",
                "run(uint8)",
                "--rpc-url",
                rpc_url,
                "--broadcast",
                "-vv",
            ],
            cwd=workdir,
            env={"PRIVATE_KEY": key},
            secrets=(private_key,),
        )

    def mint(
        self, token: str, address: str, amount: str, rpc_url: str, private_key: str
    ) -> str:
        return self.runner(
            [
                "cast",
                "send",
                token,
                "mint(address,uint256)",
                address,
                amount,
                "--rpc-url",
                rpc_url,
                "--private-key",
                private_key,
            ],
            secrets=(private_key,),
        )

    # Relayer

    def relayer_command(self, subnet_id: str, submitter: str) -> list[str]:
        return self.ipc_args(
            "checkpoint", "relayer", "--subnet", subnet_id, "--submitter", submitter
        )


def _parse_amount(output: str) -> float:
    token = output.strip().split()[0] if output.strip() else ""
    try:
        return float(token)
    except ValueError:
        raise ExternalProcessError(
            f"Unexpected balance output: {output.strip()!r}", output=output
        ) from None

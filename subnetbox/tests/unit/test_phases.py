"""
Unit tests for the individual deployment phases, driven with a scripted runner.
"""

import asyncio
import json
from dataclasses import replace

import pytest

from subnetbox.commands.chain import ChainCli
from subnetbox.commands.config_utils import ConfigDocument
from subnetbox.commands.constants import ANVIL_ADDRESSES, ANVIL_PRIVATE_KEYS
from subnetbox.commands.deploy.phases import (
    BootstrapStatus,
    ContractDeployer,
    FollowerJoiner,
    FundingCoordinator,
    PreparePhase,
    RelayerSupervisor,
    SubnetCreator,
    ValidatorBootstrapper,
)
from subnetbox.commands.deploy.phases import relayer as relayer_phase
from subnetbox.commands.deploy.state import (
    BootstrapEndpoint,
    ClusterState,
    DeploymentTarget,
    ValidatorIdentity,
    build_node_specs,
)
from subnetbox.commands.errors import (
    ConfigurationError,
    ExternalProcessError,
    ExtractionError,
    PollTimeoutError,
    StateError,
)
from subnetbox.commands.infra import InfraTasks
from subnetbox.commands.keystore import Keystore, anvil_keystore_records

SUBNET_ID = "/r31337/t410fabc"

BOOTSTRAP_OUTPUT = """
CometBFT node ID:
  7b3b5bd2f4a0
IPLD Resolver Multiaddress:
 /ip4/0.0.0.0/tcp/26655/p2p/16Uiu2peer
"""

CONFIG_TOML = """keystore_path = "~/.ipc"

[[subnets]]
id = "/r31337"

[subnets.config]
network_type = "fevm"
"""


def make_state(config, count=3, identities=True):
    state = ClusterState(target=config.target, nodes=build_node_specs(count))
    for index in range(count if identities else 0):
        state.validators.append(
            ValidatorIdentity(
                index=index,
                address=ANVIL_ADDRESSES[index],
                public_key=f"0x04{index}",
                private_key=ANVIL_PRIVATE_KEYS[index],
            )
        )
    return state


def seed_config_folder(config):
    config.config_folder.mkdir(parents=True, exist_ok=True)
    config.config_file.write_text(CONFIG_TOML, encoding="utf-8")
    Keystore(config.keystore_file).write(anvil_keystore_records())


def phase(phase_class, config, state, runner, **kwargs):
    return phase_class(
        config,
        state,
        chain=ChainCli(config.ipc_folder, runner=runner),
        infra=InfraTasks(config.ipc_folder, runner=runner),
        **kwargs,
    )


class TestPreparePhase:
    def test_local_prepare(self, local_config, fake_runner):
        fake_runner.on("pub-key", lambda call: f'"0x04{call["args"][-1][-4:]}"')
        fake_runner.on("export", lambda call: f'"{call["args"][-2][-4:]}key"')
        state = make_state(local_config, identities=False)

        asyncio.run(phase(PreparePhase, local_config, state, fake_runner).execute())

        folder = local_config.config_folder
        for name in ("config.toml", "prometheus.yaml", "loki-config.yaml",
                     "promtail-config.yaml", "iroh.config.toml", "evm_keystore.json"):
            assert (folder / name).is_file()
        assert [v.address for v in state.validators] == list(ANVIL_ADDRESSES[:3])
        assert local_config.key_path(1).read_text() == f"{ANVIL_ADDRESSES[1][-4:]}key"
        assert state.validators[0].public_key == f"0x04{ANVIL_ADDRESSES[0][-4:]}"
        assert fake_runner.matching("anvil-start")
        # SKIP_BUILD leaves every build step out
        assert not fake_runner.matching("make build")
        assert not fake_runner.matching("anvil-pull")
        assert ConfigDocument(local_config.config_file).get("subnets[0].config.auth_token") == ""

    def test_remote_prepare_copies_home_keystore(self, local_config, fake_runner, tmp_path, monkeypatch):
        home = tmp_path / "home"
        home.mkdir()
        monkeypatch.setenv("HOME", str(home))
        Keystore(home / "evm_keystore.json").write(anvil_keystore_records()[:3])
        remote = replace(
            local_config,
            target=DeploymentTarget(mode="remote", parent_endpoint="https://x", auth_token="tok"),
        )
        state = make_state(remote, identities=False)

        asyncio.run(phase(PreparePhase, remote, state, fake_runner).execute())

        assert Keystore(remote.keystore_file).addresses(3) == list(ANVIL_ADDRESSES[:3])
        assert not fake_runner.matching("anvil-start")
        assert ConfigDocument(remote.config_file).get("subnets[0].config.auth_token") == "tok"

    def test_missing_template_is_configuration_error(self, local_config, fake_runner):
        (local_config.ipc_folder / "infra/loki/loki-config.yaml").unlink()
        state = make_state(local_config, identities=False)
        with pytest.raises(ConfigurationError):
            asyncio.run(phase(PreparePhase, local_config, state, fake_runner).execute())


class TestContractDeployer:
    def test_extracts_addresses_and_supply_source(self, local_config, fake_runner):
        seed_config_folder(local_config)
        fake_runner.on("deploy-ipc", '{\n  "Gateway": "0xGATE",\n  "SubnetRegistry": "0xREG"\n}')
        fake_runner.on("forge script", "== Logs ==\n  contract Hoku 0xTOKEN\n")
        state = make_state(local_config)

        asyncio.run(phase(ContractDeployer, local_config, state, fake_runner).execute())

        assert state.subnet.gateway_address == "0xGATE"
        assert state.subnet.registry_address == "0xREG"
        assert state.subnet.supply_source_address == "0xTOKEN"
        mints = fake_runner.matching("mint(address,uint256)")
        assert [m["args"][4] for m in mints] == list(ANVIL_ADDRESSES)
        document = ConfigDocument(local_config.config_file)
        assert document.get("subnets[0].config.gateway_addr") == "0xGATE"
        assert document.get("subnets[0].config.registry_addr") == "0xREG"

    def test_missing_gateway_fails_fast(self, local_config, fake_runner):
        seed_config_folder(local_config)
        fake_runner.on("deploy-ipc", '"SubnetRegistry": "0xREG"')
        state = make_state(local_config)

        with pytest.raises(ExtractionError) as excinfo:
            asyncio.run(phase(ContractDeployer, local_config, state, fake_runner).execute())

        assert excinfo.value.label == "Gateway"
        assert excinfo.value.phase == "contracts-deployed"
        assert state.subnet.gateway_address is None

    def test_supplied_addresses_skip_deploy(self, local_config, fake_runner):
        seed_config_folder(local_config)
        config = replace(
            local_config,
            parent_gateway_address="0xG",
            parent_registry_address="0xR",
            supply_source_address="0xS",
        )
        state = make_state(config)

        asyncio.run(phase(ContractDeployer, config, state, fake_runner).execute())

        assert fake_runner.calls == []
        assert state.subnet.gateway_address == "0xG"
        assert state.subnet.supply_source_address == "0xS"


class TestSubnetCreator:
    def _ready_state(self, config):
        state = make_state(config)
        state.subnet.gateway_address = "0xGATE"
        state.subnet.registry_address = "0xREG"
        state.subnet.supply_source_address = "0xTOKEN"
        return state

    def test_creates_subnet_and_records_id(self, local_config, fake_runner):
        seed_config_folder(local_config)
        fake_runner.on("subnet create", f"INFO created subnet actor with id: {SUBNET_ID}\n")
        state = self._ready_state(local_config)

        asyncio.run(phase(SubnetCreator, local_config, state, fake_runner).execute())

        assert state.subnet.parent_id == "/r31337"
        assert state.subnet.subnet_id == SUBNET_ID
        assert ConfigDocument(local_config.config_file).get("subnets[1].id") == SUBNET_ID
        power = fake_runner.matching("set-federated-power")
        assert len(power) == 1
        assert power[0]["cmd"].endswith("--validator-power 1 1 1")

    def test_missing_subnet_id(self, local_config, fake_runner):
        seed_config_folder(local_config)
        fake_runner.on("subnet create", "something went sideways")
        state = self._ready_state(local_config)

        with pytest.raises(ExtractionError):
            asyncio.run(phase(SubnetCreator, local_config, state, fake_runner).execute())
        assert not fake_runner.matching("set-federated-power")


def _subnet_ready_state(config, count=3):
    state = make_state(config, count)
    state.subnet.parent_id = "/r31337"
    state.subnet.gateway_address = "0xGATE"
    state.subnet.registry_address = "0xREG"
    state.subnet.subnet_id = SUBNET_ID
    return state


class TestValidatorBootstrapper:
    def test_starts_node_zero_and_records_endpoint(self, local_config, fake_runner):
        listings = iter(["", "", SUBNET_ID])
        fake_runner.on("subnet list", lambda call: next(listings))
        fake_runner.on("child-validator", BOOTSTRAP_OUTPUT)
        state = _subnet_ready_state(local_config)
        bootstrapper = phase(ValidatorBootstrapper, local_config, state, fake_runner)
        assert bootstrapper.status is BootstrapStatus.NOT_STARTED

        asyncio.run(bootstrapper.execute())

        assert bootstrapper.status is BootstrapStatus.STARTED
        assert len(fake_runner.matching("subnet list")) == 3
        assert state.bootstrap.node_endpoint == "7b3b5bd2f4a0@validator-0-cometbft:26656"
        assert (
            state.bootstrap.resolver_endpoint
            == "/dns/validator-0-fendermint/tcp/26655/p2p/16Uiu2peer"
        )
        cmd = fake_runner.matching("child-validator")[0]["cmd"]
        for expected in (
            "NODE_NAME=validator-0",
            f"SUBNET_ID={SUBNET_ID}",
            "CMT_P2P_HOST_PORT=26656",
            "ETHAPI_HOST_PORT=8645",
            "PARENT_GATEWAY=0xGATE",
            "PARENT_REGISTRY=0xREG",
            "FM_PULL_SKIP=1",
        ):
            assert f"-e {expected}" in cmd
        assert "BOOTSTRAPS" not in cmd

    def test_missing_marker_fails(self, local_config, fake_runner):
        fake_runner.on("subnet list", SUBNET_ID)
        fake_runner.on("child-validator", "CometBFT node ID:\n abc\n")
        state = _subnet_ready_state(local_config)
        bootstrapper = phase(ValidatorBootstrapper, local_config, state, fake_runner)

        with pytest.raises(ExtractionError):
            asyncio.run(bootstrapper.execute())

        assert bootstrapper.status is BootstrapStatus.FAILED
        assert state.bootstrap is None

    def test_start_failure_marks_failed(self, local_config, fake_runner):
        fake_runner.on("subnet list", SUBNET_ID)
        fake_runner.on("child-validator", ExternalProcessError("boom", returncode=2))
        state = _subnet_ready_state(local_config)
        bootstrapper = phase(ValidatorBootstrapper, local_config, state, fake_runner)

        with pytest.raises(ExternalProcessError):
            asyncio.run(bootstrapper.execute())
        assert bootstrapper.status is BootstrapStatus.FAILED

    def test_subnet_never_listed_times_out(self, local_config, fake_runner):
        config = replace(local_config, subnet_confirm_timeout=0.05)
        state = _subnet_ready_state(config)
        bootstrapper = phase(ValidatorBootstrapper, config, state, fake_runner)

        with pytest.raises(PollTimeoutError):
            asyncio.run(bootstrapper.execute())
        assert not fake_runner.matching("child-validator")
        assert bootstrapper.status is BootstrapStatus.NOT_STARTED


class TestFollowerJoiner:
    @pytest.mark.parametrize("followers", [1, 2])
    def test_all_followers_share_one_bootstrap(self, local_config, fake_runner, followers):
        state = _subnet_ready_state(local_config, followers + 1)
        endpoint = BootstrapEndpoint.from_identity("nodeid", "peer", state.bootstrap_node)
        state.set_bootstrap(endpoint)

        joiner = phase(
            FollowerJoiner,
            local_config,
            state,
            fake_runner,
            bootstrap_status=BootstrapStatus.STARTED,
        )
        asyncio.run(joiner.execute())

        launches = fake_runner.matching("child-validator")
        assert len(launches) == followers
        names = sorted(
            next(a for a in call["args"] if a.startswith("NODE_NAME=")) for call in launches
        )
        assert names == [f"NODE_NAME=validator-{i}" for i in range(1, followers + 1)]
        for call in launches:
            assert f"-e BOOTSTRAPS={endpoint.node_endpoint}" in call["cmd"]
            assert f"-e RESOLVER_BOOTSTRAPS={endpoint.resolver_endpoint}" in call["cmd"]

    @pytest.mark.parametrize(
        "status", [BootstrapStatus.NOT_STARTED, BootstrapStatus.STARTING, BootstrapStatus.FAILED]
    )
    def test_refuses_without_started_bootstrap(self, local_config, fake_runner, status):
        state = _subnet_ready_state(local_config)
        joiner = phase(FollowerJoiner, local_config, state, fake_runner, bootstrap_status=status)

        with pytest.raises(StateError):
            asyncio.run(joiner.execute())
        assert fake_runner.calls == []

    def test_follower_failure_propagates(self, local_config, fake_runner):
        fake_runner.on("NODE_NAME=validator-2", ExternalProcessError("no space", returncode=5))
        state = _subnet_ready_state(local_config)
        state.set_bootstrap(BootstrapEndpoint.from_identity("n", "p", state.bootstrap_node))
        joiner = phase(
            FollowerJoiner,
            local_config,
            state,
            fake_runner,
            bootstrap_status=BootstrapStatus.STARTED,
        )

        with pytest.raises(ExternalProcessError) as excinfo:
            asyncio.run(joiner.execute())
        assert excinfo.value.returncode == 5


class TestFundingCoordinator:
    @pytest.mark.parametrize("zero_polls", [0, 2])
    def test_polls_k_plus_one_times(self, local_config, fake_runner, zero_polls):
        seed_config_folder(local_config)
        readings = iter(["0.000000000000000000"] * zero_polls + ["10000.0"])
        fake_runner.on("cast balance", lambda call: next(readings))
        state = _subnet_ready_state(local_config)

        asyncio.run(phase(FundingCoordinator, local_config, state, fake_runner).execute())

        funded = fake_runner.matching("fund-with-token")
        assert [c["args"][c["args"].index("--from") + 1] for c in funded] == list(ANVIL_ADDRESSES)
        polls = fake_runner.matching("cast balance")
        assert len(polls) == zero_polls + 1
        assert all(ANVIL_ADDRESSES[9] in p["args"] for p in polls)
        assert all("http://localhost:8645" in p["args"] for p in polls)

    def test_times_out(self, local_config, fake_runner):
        seed_config_folder(local_config)
        fake_runner.on("cast balance", "0")
        config = replace(local_config, funding_timeout=0.05)
        state = _subnet_ready_state(config)

        with pytest.raises(TimeoutError):
            asyncio.run(phase(FundingCoordinator, config, state, fake_runner).execute())

    def test_remote_is_skipped(self, local_config, fake_runner):
        remote = replace(
            local_config,
            target=DeploymentTarget(mode="remote", parent_endpoint="https://x", auth_token="t"),
        )
        state = _subnet_ready_state(remote)
        asyncio.run(phase(FundingCoordinator, remote, state, fake_runner).execute())
        assert fake_runner.calls == []


class TestRelayerSupervisor:
    def test_relayer_gets_private_keystore(self, local_config, fake_runner, monkeypatch):
        seed_config_folder(local_config)
        shared_before = local_config.keystore_file.read_text()
        launched = {}

        def fake_launch(args, log_file, cwd=None, env=None):
            launched["args"] = list(args)
            launched["log_file"] = log_file
            # The real relayer rewrites the keystore it was pointed at
            relayer_keystore = local_config.relayer_folder / "evm_keystore.json"
            records = json.loads(relayer_keystore.read_text())
            relayer_keystore.write_text(json.dumps(list(reversed(records))))
            return 4242

        monkeypatch.setattr(relayer_phase, "launch_detached", fake_launch)
        state = _subnet_ready_state(local_config)

        asyncio.run(phase(RelayerSupervisor, local_config, state, fake_runner).execute())

        relayer_config = local_config.relayer_folder / "config.toml"
        assert launched["args"][:3] == ["ipc-cli", "--config-path", str(relayer_config)]
        assert launched["args"][-4:] == ["--subnet", SUBNET_ID, "--submitter", ANVIL_ADDRESSES[0]]
        assert launched["log_file"] == local_config.relayer_log_file
        assert ConfigDocument(relayer_config).get("keystore_path") == str(local_config.relayer_folder)
        # The shared keystore and config keep their contents
        assert local_config.keystore_file.read_text() == shared_before
        assert ConfigDocument(local_config.config_file).get("keystore_path") == "~/.ipc"
        assert local_config.relayer_pid_file.read_text() == "4242"
        assert state.relayer_pid == 4242

    def test_previous_relayer_is_stopped(self, local_config, fake_runner, monkeypatch):
        seed_config_folder(local_config)
        local_config.relayer_pid_file.write_text("1111")
        killed = []
        monkeypatch.setattr("subnetbox.commands.process.os.kill", lambda pid, sig: killed.append(pid))
        monkeypatch.setattr(relayer_phase, "launch_detached", lambda *a, **k: 2222)
        state = _subnet_ready_state(local_config)

        asyncio.run(phase(RelayerSupervisor, local_config, state, fake_runner).execute())

        assert killed == [1111]
        assert local_config.relayer_pid_file.read_text() == "2222"

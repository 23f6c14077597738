"""Pytest configuration for subnetbox tests.

Provides a scripted stand-in for the external command runner and a
throwaway source tree / config folder pair for deployment runs.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from subnetbox.commands.deploy.config import DeploymentConfig
from subnetbox.commands.deploy.state import DeploymentTarget
from subnetbox.commands.manager import DockerManager

LOCAL_CONFIG_TOML = """keystore_path = "~/.ipc"

[[subnets]]
id = "/r31337"

[subnets.config]
network_type = "fevm"
provider_http = "http://localhost:8545"
"""

OBSERVABILITY_FILES = (
    "infra/prometheus/prometheus.yaml",
    "infra/loki/loki-config.yaml",
    "infra/promtail/promtail-config.yaml",
    "infra/iroh/iroh.config.toml",
)


class FakeRunner:
    """Records every command and answers from scripted rules.

    A rule maps a substring of the space-joined command to either an output
    string, an exception instance to raise, or a callable taking the call
    record and returning one of those.
    """

    def __init__(self):
        self.calls: list[dict] = []
        self.rules: list[tuple[str, object]] = []

    def on(self, needle: str, response) -> "FakeRunner":
        self.rules.append((needle, response))
        return self

    def __call__(self, args, cwd=None, env=None, secrets=()):
        call = {
            "args": [str(a) for a in args],
            "cmd": " ".join(str(a) for a in args),
            "cwd": cwd,
            "env": dict(env or {}),
            "secrets": tuple(secrets),
        }
        self.calls.append(call)
        for needle, response in self.rules:
            if needle in call["cmd"]:
                if callable(response) and not isinstance(response, Exception):
                    response = response(call)
                if isinstance(response, Exception):
                    raise response
                return response
        return ""

    def matching(self, needle: str) -> list[dict]:
        return [c for c in self.calls if needle in c["cmd"]]


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def ipc_folder(tmp_path) -> Path:
    """A minimal source tree with the files the prepare phase copies."""
    root = tmp_path / "ipc"
    for template in (
        "scripts/deploy_subnet/.ipc-local/config.toml",
        "scripts/deploy_subnet/.ipc-cal/config.toml",
    ):
        path = root / template
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(LOCAL_CONFIG_TOML, encoding="utf-8")
    for relative in OBSERVABILITY_FILES:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("# test\n", encoding="utf-8")
    return root


@pytest.fixture
def local_config(tmp_path, ipc_folder) -> DeploymentConfig:
    return DeploymentConfig(
        target=DeploymentTarget(mode="local", parent_endpoint="http://anvil:8545"),
        ipc_folder=ipc_folder,
        config_folder=tmp_path / "dot-ipc",
        skip_dependencies=True,
        skip_build=True,
        subnet_confirm_timeout=5,
        subnet_confirm_delay=0.01,
        funding_timeout=5,
        funding_poll_delay=0.01,
    )


@pytest.fixture
def mock_manager():
    manager = MagicMock(spec=DockerManager)
    manager.networks_of.return_value = []
    manager.destroy.return_value = False
    manager.destroy_network.return_value = False
    return manager

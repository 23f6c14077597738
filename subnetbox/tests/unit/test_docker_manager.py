from unittest.mock import MagicMock, patch

import docker
import pytest

from subnetbox.commands.errors import ConfigurationError, ExternalProcessError
from subnetbox.commands.manager import ContainerSpec, DockerManager
from subnetbox.commands.observability import (
    destroy_observability,
    observability_specs,
    start_observability,
)
from subnetbox.commands.utils import console


@patch("docker.from_env")
def test_manager_connects_from_environment(mock_docker):
    client = MagicMock()
    mock_docker.return_value = client
    assert DockerManager().client is client


@patch("docker.from_env", side_effect=docker.errors.DockerException("no socket"))
def test_manager_without_docker_is_configuration_error(mock_docker):
    with pytest.raises(ConfigurationError):
        DockerManager()


def test_create_replaces_stale_container_and_labels_it():
    client = MagicMock()
    stale = MagicMock()
    client.containers.get.return_value = stale
    manager = DockerManager(client=client)

    spec = ContainerSpec(
        name="prometheus",
        image="prom/prometheus:latest",
        ports={"9090/tcp": 9090},
        network="subnet-net",
        labels={"subnetbox.role": "observability"},
    )
    manager.create(spec)

    stale.remove.assert_called_once_with(force=True)
    _, kwargs = client.containers.create.call_args
    assert kwargs["name"] == "prometheus"
    assert kwargs["network"] == "subnet-net"
    assert kwargs["ports"] == {"9090/tcp": 9090}
    assert kwargs["labels"]["subnetbox.managed"] == "true"
    assert kwargs["labels"]["subnetbox.role"] == "observability"
    assert "command" not in kwargs


def test_create_pulls_missing_image():
    client = MagicMock()
    client.images.get.side_effect = docker.errors.ImageNotFound("missing")
    client.containers.get.side_effect = docker.errors.NotFound("gone")
    manager = DockerManager(client=client)

    manager.create(ContainerSpec(name="loki", image="grafana/loki:latest"))

    client.images.pull.assert_called_once_with("grafana/loki:latest")


def test_destroy_absent_container_is_not_an_error():
    client = MagicMock()
    client.containers.get.side_effect = docker.errors.NotFound("gone")
    manager = DockerManager(client=client)

    assert manager.destroy("validator-0-cometbft") is False
    assert manager.destroy("validator-0-cometbft") is False


def test_destroy_api_failure_raises():
    client = MagicMock()
    client.containers.get.return_value.remove.side_effect = docker.errors.APIError("busy")
    manager = DockerManager(client=client)

    with pytest.raises(ExternalProcessError):
        manager.destroy("loki")


def test_networks_of_skips_builtin_networks():
    client = MagicMock()
    client.containers.get.return_value.attrs = {
        "NetworkSettings": {"Networks": {"bridge": {}, "/r31337/t410fabc": {}}}
    }
    manager = DockerManager(client=client)

    assert manager.networks_of("validator-0-fendermint") == ["/r31337/t410fabc"]


def test_destroy_network_absent():
    client = MagicMock()
    client.networks.get.side_effect = docker.errors.NotFound("gone")
    assert DockerManager(client=client).destroy_network("net") is False


def test_removal_is_reported_on_the_shared_console():
    client = MagicMock()
    with console.capture() as capture:
        assert DockerManager(client=client).destroy_network("net") is True
    assert "Removed network net" in capture.get()


def test_observability_specs_mount_configs(tmp_path):
    specs = {s.name: s for s in observability_specs(tmp_path, "net")}

    assert set(specs) == {"prometheus", "loki", "grafana"}
    assert specs["prometheus"].ports == {"9090/tcp": 9090}
    assert str(tmp_path / "prometheus.yaml") in specs["prometheus"].volumes
    assert str(tmp_path / "loki-config.yaml") in specs["loki"].volumes
    assert specs["grafana"].ports == {"3000/tcp": 3000}
    assert all(s.network == "net" for s in specs.values())


def test_start_and_destroy_observability(tmp_path):
    manager = MagicMock(spec=DockerManager)

    start_observability(manager, tmp_path, "net")
    destroy_observability(manager)

    started = [c.args[0] for c in manager.start.call_args_list]
    destroyed = [c.args[0] for c in manager.destroy.call_args_list]
    assert started == ["prometheus", "loki", "grafana"]
    assert sorted(destroyed) == ["grafana", "loki", "prometheus"]

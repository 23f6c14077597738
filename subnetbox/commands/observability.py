"""
Observability stack - prometheus, loki and grafana containers next to the validators.
"""

from pathlib import Path
from typing import Optional, Union

from subnetbox.commands.constants import (
    GRAFANA_HOST_PORT,
    GRAFANA_IMAGE,
    LOKI_HOST_PORT,
    LOKI_IMAGE,
    OBSERVABILITY_SERVICES,
    PROMETHEUS_HOST_PORT,
    PROMETHEUS_IMAGE,
)
from subnetbox.commands.manager import ContainerSpec, DockerManager
from subnetbox.commands.utils import console


def observability_specs(
    config_folder: Union[Path, str], network: Optional[str]
) -> list[ContainerSpec]:
    """Container specs for the stack, with configs mounted from ``config_folder``."""
    config_folder = Path(config_folder).absolute()
    labels = {"subnetbox.role": "observability"}
    return [
        ContainerSpec(
            name="prometheus",
            image=PROMETHEUS_IMAGE,
            ports={"9090/tcp": PROMETHEUS_HOST_PORT},
            volumes={
                str(config_folder / "prometheus.yaml"): {
                    "bind": "/etc/prometheus/prometheus.yml",
                    "mode": "ro",
                }
            },
            network=network,
            labels=labels,
        ),
        ContainerSpec(
            name="loki",
            image=LOKI_IMAGE,
            command=["-config.file=/etc/loki/local-config.yaml"],
            ports={"3100/tcp": LOKI_HOST_PORT},
            volumes={
                str(config_folder / "loki-config.yaml"): {
                    "bind": "/etc/loki/local-config.yaml",
                    "mode": "ro",
                }
            },
            network=network,
            labels=labels,
        ),
        ContainerSpec(
            name="grafana",
            image=GRAFANA_IMAGE,
            ports={"3000/tcp": GRAFANA_HOST_PORT},
            network=network,
            labels=labels,
        ),
    ]


def start_observability(
    manager: DockerManager, config_folder: Union[Path, str], network: Optional[str]
) -> None:
    for spec in observability_specs(config_folder, network):
        manager.create(spec)
        manager.start(spec.name)
    console.print(
        f"[green]✓ Observability stack running on network {network or 'default'}[/green]"
    )


def destroy_observability(manager: DockerManager) -> None:
    for name in OBSERVABILITY_SERVICES:
        manager.destroy(name)

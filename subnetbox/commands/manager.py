"""
Docker Manager - container lifecycle client for the deployment's services.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import docker

from subnetbox.commands.errors import ConfigurationError, ExternalProcessError
from subnetbox.commands.utils import console

logger = logging.getLogger(__name__)
# Networks docker creates itself and that must never be removed
BUILTIN_NETWORKS = {"bridge", "host", "none"}


@dataclass
class ContainerSpec:
    """Everything needed to create one container."""

    name: str
    image: str
    command: Optional[list[str]] = None
    ports: dict[str, int] = field(default_factory=dict)
    volumes: dict[str, dict[str, str]] = field(default_factory=dict)
    environment: dict[str, str] = field(default_factory=dict)
    network: Optional[str] = None
    labels: dict[str, str] = field(default_factory=dict)


class DockerManager:
    """Creates, starts and destroys named containers."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize with an optional Docker client.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.
        """
        if client is not None:
            self.client = client
        else:
            try:
                self.client = docker.from_env()
            except Exception as e:
                console.print(f"[red]Failed to connect to Docker: {str(e)}[/red]")
                console.print(
                    "[yellow]Make sure Docker is running and you have permission to access it.[/yellow]"
                )
                raise ConfigurationError(f"Docker is not available: {e}") from e

    def _ensure_image_pulled(self, image: str) -> None:
        """Ensure the specified Docker image is available locally, pulling if needed."""
        try:
            self.client.images.get(image)
            console.print(f"[cyan]✓ Image {image} already available locally[/cyan]")
            return
        except docker.errors.ImageNotFound:
            pass

        console.print(f"[yellow]Pulling image: {image}[/yellow]")
        try:
            self.client.images.pull(image)
        except docker.errors.APIError as e:
            raise ExternalProcessError(f"Failed to pull image {image}: {e}") from e
        console.print(f"[green]✓ Successfully pulled image: {image}[/green]")

    def create(self, spec: ContainerSpec):
        """Create (but do not start) a container, replacing any stale one."""
        self._ensure_image_pulled(spec.image)
        self.destroy(spec.name)

        kwargs: dict[str, Any] = {
            "name": spec.name,
            "detach": True,
            "ports": dict(spec.ports),
            "volumes": dict(spec.volumes),
            "environment": dict(spec.environment),
            "labels": {"subnetbox.managed": "true", **spec.labels},
        }
        if spec.command:
            kwargs["command"] = spec.command
        if spec.network:
            kwargs["network"] = spec.network

        try:
            container = self.client.containers.create(spec.image, **kwargs)
        except docker.errors.APIError as e:
            raise ExternalProcessError(
                f"Failed to create container {spec.name}: {e}"
            ) from e
        logger.debug("Created container %s from %s", spec.name, spec.image)
        return container

    def start(self, name: str) -> None:
        try:
            self.client.containers.get(name).start()
        except docker.errors.APIError as e:
            raise ExternalProcessError(f"Failed to start container {name}: {e}") from e
        console.print(f"[green]✓ Started {name}[/green]")

    def destroy(self, name: str) -> bool:
        """
        Force-remove a container.

        An absent container is not an error.

        Returns:
            True if a container was removed, False if there was nothing to remove
        """
        try:
            container = self.client.containers.get(name)
        except docker.errors.NotFound:
            logger.debug("Container %s already absent", name)
            return False
        try:
            container.remove(force=True)
        except docker.errors.NotFound:
            return False
        except docker.errors.APIError as e:
            raise ExternalProcessError(f"Failed to remove container {name}: {e}") from e
        console.print(f"[green]✓ Removed container {name}[/green]")
        return True

    def networks_of(self, name: str) -> list[str]:
        """Names of the user-defined networks a container is attached to."""
        try:
            container = self.client.containers.get(name)
        except docker.errors.NotFound:
            return []
        networks = container.attrs.get("NetworkSettings", {}).get("Networks") or {}
        return [n for n in networks if n not in BUILTIN_NETWORKS]

    def destroy_network(self, name: str) -> bool:
        """Remove a network. An absent network is not an error."""
        try:
            self.client.networks.get(name).remove()
        except docker.errors.NotFound:
            return False
        except docker.errors.APIError as e:
            raise ExternalProcessError(f"Failed to remove network {name}: {e}") from e
        console.print(f"[green]✓ Removed network {name}[/green]")
        return True

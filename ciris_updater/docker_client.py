"""
Docker runtime client for CIRISUpdater.

Implements the RuntimeClient protocol on top of the Docker SDK: snapshots
containers, pulls and compares images, and recreates containers from their
captured configuration with the freshly pulled image.
"""

import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional

import docker
from docker.errors import ImageNotFound

from ciris_updater.models import (
    LABEL_DEPENDS_ON,
    LABEL_NO_PULL,
    LABEL_SELF,
    LABEL_STOP_SIGNAL,
    Container,
)

logger = logging.getLogger("ciris_updater.docker_client")

EXEC_POLL_INTERVAL = 0.5


def _is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _is_own_container(container_id: str, labels: Dict[str, str]) -> bool:
    """Labelled as the updater, or the container this process runs in."""
    if _is_true(labels.get(LABEL_SELF)):
        return True
    # Docker sets HOSTNAME to the short container ID unless a hostname is configured
    hostname = os.environ.get("HOSTNAME", "")
    return len(hostname) >= 12 and container_id.startswith(hostname)


class DockerRuntimeClient:
    """Runtime client backed by a Docker daemon."""

    def __init__(
        self,
        docker_client: Optional[docker.DockerClient] = None,
        pull_images: bool = True,
        include_stopped: bool = False,
        include_restarting: bool = False,
    ) -> None:
        """
        Initialize the runtime client.

        Args:
            docker_client: Docker SDK client. Defaults to docker.from_env()
            pull_images: Pull images before comparing them
            include_stopped: Also manage created and exited containers
            include_restarting: Also manage restarting containers
        """
        self.client = docker_client or docker.from_env()
        self.pull_images = pull_images
        self.include_stopped = include_stopped
        self.include_restarting = include_restarting

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def list_containers(self, container_filter: Callable[[Container], bool]) -> List[Container]:
        """List managed containers. Docker errors propagate to the caller."""
        statuses = ["running"]
        if self.include_stopped:
            statuses.extend(["created", "exited"])
        if self.include_restarting:
            statuses.append("restarting")

        logger.debug(f"Retrieving containers with status {statuses}")
        docker_containers = self.client.containers.list(all=True, filters={"status": statuses})

        containers = []
        for docker_container in docker_containers:
            container = self._build_container(docker_container)
            if container_filter(container):
                containers.append(container)

        logger.debug(f"Found {len(containers)} managed containers")
        return containers

    def get_container(self, container_id: str) -> Container:
        """Inspect a single container by ID or name."""
        return self._build_container(self.client.containers.get(container_id))

    def _build_container(self, docker_container: Any) -> Container:
        attrs = docker_container.attrs
        config = attrs.get("Config") or {}
        host_config = attrs.get("HostConfig") or {}
        labels = config.get("Labels") or {}
        image_id = attrs.get("Image", "")

        image_config = None
        try:
            image_config = self.client.images.get(image_id).attrs.get("Config") or {}
        except ImageNotFound:
            logger.warning(f"Image {image_id[:19]} of {docker_container.name} is not available")

        return Container(
            container_id=docker_container.id,
            name=attrs.get("Name", docker_container.name).lstrip("/"),
            image_name=config.get("Image", ""),
            image_id=image_id,
            created=attrs.get("Created", ""),
            links=self._links(host_config, labels),
            labels=labels,
            config={
                "Config": config,
                "HostConfig": host_config,
                "Networks": (attrs.get("NetworkSettings") or {}).get("Networks") or {},
                "ImageConfig": image_config,
            },
            has_image_info=image_config is not None,
            is_self=_is_own_container(docker_container.id, labels),
        )

    @staticmethod
    def _links(host_config: Dict[str, Any], labels: Dict[str, str]) -> List[str]:
        links: List[str] = []

        # Legacy links look like "/db:/web/db"
        for link in host_config.get("Links") or []:
            name = link.split(":", 1)[0].lstrip("/")
            if name and name not in links:
                links.append(name)

        # Shared network namespace: network_mode: container:<name>
        network_mode = host_config.get("NetworkMode") or ""
        if network_mode.startswith("container:"):
            name = network_mode[len("container:") :].lstrip("/")
            if name and name not in links:
                links.append(name)

        for name in (labels.get(LABEL_DEPENDS_ON) or "").split(","):
            name = name.strip().lstrip("/")
            if name and name not in links:
                links.append(name)

        return links

    # ------------------------------------------------------------------
    # Staleness
    # ------------------------------------------------------------------

    def is_container_stale(self, container: Container) -> bool:
        """Pull the container's image if allowed and compare image IDs."""
        image_name = container.image_name
        if not image_name or image_name.startswith("sha256:") or "@sha256:" in image_name:
            logger.debug(f"{container.name} uses a pinned image, skipping")
            return False

        if self.pull_images and not _is_true(container.labels.get(LABEL_NO_PULL)):
            logger.debug(f"Pulling {image_name} for {container.name}")
            self.client.images.pull(image_name)
        else:
            logger.debug(f"Skipping image pull for {container.name}")

        latest = self.client.images.get(image_name)
        if latest.id != container.image_id:
            logger.info(f"Found new {image_name} image ({latest.id[:19]})")
            return True
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def stop_container(self, container: Container, timeout: float) -> None:
        """Stop the container and remove it so its name can be reused."""
        docker_container = self.client.containers.get(container.container_id)
        signal = container.labels.get(LABEL_STOP_SIGNAL)

        if docker_container.status == "running":
            logger.info(f"Stopping {container.name} with {signal or 'default signal'}")
            if signal:
                docker_container.kill(signal=signal)
                try:
                    docker_container.wait(timeout=timeout)
                except Exception as e:
                    logger.warning(f"{container.name} did not stop within {timeout}s ({e}), killing")
                    docker_container.kill()
            else:
                docker_container.stop(timeout=int(timeout))

        if (container.config.get("HostConfig") or {}).get("AutoRemove"):
            logger.debug(f"AutoRemove is set for {container.name}, skipping removal")
            return

        logger.debug(f"Removing container {container.name}")
        docker_container.remove(v=False)

    def start_container(self, container: Container) -> str:
        """Create the replacement container from the captured config and start it."""
        host_config = container.config.get("HostConfig") or {}
        networks: Dict[str, Any] = container.config.get("Networks") or {}
        network_mode = host_config.get("NetworkMode") or ""

        primary = None
        networking_config = None
        if networks and network_mode != "host" and not network_mode.startswith("container:"):
            primary = network_mode if network_mode in networks else next(iter(networks))
            networking_config = {
                "EndpointsConfig": {primary: self._endpoint_config(container, networks[primary])}
            }

        logger.info(f"Creating {container.name} from {container.image_name}")
        response = self.client.api.create_container(
            image=container.image_name,
            name=container.name,
            host_config=host_config,
            networking_config=networking_config,
            **self._create_config(container),
        )
        new_container_id = response["Id"]

        if networking_config is not None:
            for network_name, endpoint in networks.items():
                if network_name == primary:
                    continue
                endpoint_config = self._endpoint_config(container, endpoint)
                self.client.api.connect_container_to_network(
                    new_container_id,
                    network_name,
                    aliases=endpoint_config["Aliases"],
                    links=endpoint_config["Links"],
                )

        logger.debug(f"Starting container {container.name} ({new_container_id[:12]})")
        self.client.api.start(new_container_id)
        return new_container_id

    @staticmethod
    def _endpoint_config(container: Container, endpoint: Dict[str, Any]) -> Dict[str, Any]:
        # Docker adds the short container ID as an alias; it belongs to the old container
        aliases = [a for a in endpoint.get("Aliases") or [] if a != container.container_id[:12]]
        return {
            "Aliases": aliases or None,
            "Links": endpoint.get("Links") or None,
            "IPAMConfig": endpoint.get("IPAMConfig") or None,
        }

    @staticmethod
    def _create_config(container: Container) -> Dict[str, Any]:
        """
        Build create_container arguments from the captured config.

        Values the old image supplied as defaults are dropped so the new
        image's defaults apply.
        """
        config: Dict[str, Any] = container.config.get("Config") or {}
        image_config: Dict[str, Any] = container.config.get("ImageConfig") or {}

        def own(key: str) -> Any:
            value = config.get(key)
            return None if value == image_config.get(key) else value

        image_env = set(image_config.get("Env") or [])
        environment = [e for e in config.get("Env") or [] if e not in image_env]

        image_labels = image_config.get("Labels") or {}
        labels = {k: v for k, v in (config.get("Labels") or {}).items() if image_labels.get(k) != v}

        image_ports = image_config.get("ExposedPorts") or {}
        ports = [
            tuple(port.split("/", 1))
            for port in (config.get("ExposedPorts") or {})
            if port not in image_ports
        ]

        image_volumes = image_config.get("Volumes") or {}
        volumes = [v for v in (config.get("Volumes") or {}) if v not in image_volumes]

        hostname = config.get("Hostname")
        if hostname == container.container_id[:12]:
            hostname = None

        return {
            "command": own("Cmd"),
            "entrypoint": own("Entrypoint"),
            "working_dir": own("WorkingDir") or None,
            "user": own("User") or None,
            "environment": environment or None,
            "labels": labels or None,
            "ports": ports or None,
            "volumes": volumes or None,
            "hostname": hostname or None,
            "domainname": config.get("Domainname") or None,
            "tty": bool(config.get("Tty")),
            "stdin_open": bool(config.get("OpenStdin")),
            "stop_signal": own("StopSignal"),
            "healthcheck": own("Healthcheck"),
            "detach": True,
        }

    def rename_container(self, container: Container, new_name: str) -> None:
        """Rename a container."""
        logger.debug(f"Renaming {container.name} to {new_name}")
        self.client.containers.get(container.container_id).rename(new_name)

    def remove_image_by_id(self, image_id: str) -> None:
        """Force-remove an image."""
        logger.debug(f"Removing image {image_id[:19]}")
        self.client.images.remove(image_id, force=True)

    def execute_command(
        self, container_id: str, command: str, timeout: Optional[float] = None
    ) -> int:
        """
        Run a shell command in a container and wait for it to finish.

        Raises:
            TimeoutError: If the command is still running after timeout seconds
        """
        exec_id = self.client.api.exec_create(container_id, ["sh", "-c", command])["Id"]
        self.client.api.exec_start(exec_id, detach=True)

        deadline = time.monotonic() + timeout if timeout else None
        while True:
            info = self.client.api.exec_inspect(exec_id)
            if not info.get("Running"):
                return int(info.get("ExitCode") or 0)
            if deadline is not None and time.monotonic() > deadline:
                raise TimeoutError(f"Command did not finish within {timeout}s")
            time.sleep(EXEC_POLL_INTERVAL)

    def close(self) -> None:
        """Close the Docker connection."""
        try:
            self.client.close()
        except Exception as e:
            logger.warning(f"Error closing Docker client: {e}")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close the connection."""
        self.close()

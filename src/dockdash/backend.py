"""
Docker API wrapper for dockdash.

This module provides the thin interface to the Docker daemon used by the
event and stats producers, via the docker-py library:
  - Connecting to an endpoint and verifying the daemon answers
  - Listing running containers as ContainerInfo descriptors
  - Following the container event stream
  - Sampling CPU/RAM usage of one container

Key Classes:
  - DockerBackend: API wrapper around one docker.DockerClient

Error Handling:
  - Connection errors at startup -> DockerConnectionError (fatal)
  - Per-container lookups and stats -> @docker_safe, logged, default value
  - The event stream is not wrapped: its failure is reported by EventWorker

Dependencies:
  - docker>=7.0.0 (docker-py client)
"""

import functools
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import docker

from . import DockdashError
from .model import ContainerInfo
from .stats import calculate_cpu_percent, calculate_mem_percent

logger = logging.getLogger(__name__)

# Docker event actions that change whether a container is running
START_ACTIONS = frozenset({"start", "unpause", "restart"})
STOP_ACTIONS = frozenset({"die", "stop", "destroy", "pause"})


class DockerConnectionError(DockdashError):
    """The Docker daemon could not be reached."""


def docker_safe(default_return: Any = None) -> Callable:
    """
    Decorator for Docker API methods that ensures safe error handling.

    Catches exceptions, logs them, and returns a default value so one
    vanished container cannot take down a producer thread.

    Args:
        default_return: Value to return if exception occurs ([], {}, None, etc.)

    Usage:
        @docker_safe(default_return=None)
        def container_stats(self, container_id: str) -> Optional[Tuple[float, float]]:
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Docker operation failed in {func.__name__}: {e}", exc_info=True)
                return default_return
        return wrapper
    return decorator


def _format_ports(ports: Optional[Dict[str, Any]]) -> str:
    """NetworkSettings.Ports -> "443/tcp, 0.0.0.0:8080->80/tcp"."""
    if not ports:
        return ""
    res = []
    for container_port, bindings in sorted(ports.items()):
        if not bindings:
            res.append(container_port)
            continue
        for b in bindings:
            res.append(f"{b.get('HostIp', '')}:{b.get('HostPort', '')}->{container_port}")
    return ", ".join(res)


def _join(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value)


def describe(container) -> ContainerInfo:
    """Build a descriptor from a docker-py Container object."""
    attrs = container.attrs or {}
    config = attrs.get('Config') or {}
    host_config = attrs.get('HostConfig') or {}
    network = attrs.get('NetworkSettings') or {}
    return ContainerInfo(
        id=container.id,
        name=(container.name or "").lstrip("/"),
        image=config.get('Image') or attrs.get('Image', 'unknown'),
        status=container.status,
        ports=_format_ports(network.get('Ports')),
        command=_join(config.get('Cmd')),
        entrypoint=_join(config.get('Entrypoint')),
        env=", ".join(config.get('Env') or []),
        binds=", ".join(host_config.get('Binds') or []),
        created=(attrs.get('Created') or "")[:19].replace("T", " "),
    )


class DockerBackend:
    def __init__(self, endpoint: str, timeout: int = 10):
        self.endpoint = endpoint
        try:
            self.client = docker.DockerClient(base_url=endpoint, timeout=timeout)
            self.client.ping()
        except Exception as e:
            raise DockerConnectionError(f"Cannot connect to Docker at {endpoint}: {e}") from e
        logger.info(f"Connected to Docker at {endpoint}")

    def list_running(self) -> List[ContainerInfo]:
        return [describe(c) for c in self.client.containers.list()]

    @docker_safe(default_return=None)
    def inspect(self, container_id: str) -> Optional[ContainerInfo]:
        return describe(self.client.containers.get(container_id))

    def events(self) -> Iterator[Dict[str, Any]]:
        """Blocking iterator over decoded container events."""
        return self.client.events(decode=True, filters={"type": "container"})

    @docker_safe(default_return=None)
    def container_stats(self, container_id: str) -> Optional[Tuple[float, float]]:
        """(cpu %, mem %) of a running container, or None if unavailable."""
        c = self.client.containers.get(container_id)
        if c.status != 'running':
            return None
        stats = c.stats(stream=False)
        return calculate_cpu_percent(stats), calculate_mem_percent(stats)

    def close(self) -> None:
        try:
            self.client.close()
        except Exception as e:
            logger.debug(f"Error closing Docker client: {e}")

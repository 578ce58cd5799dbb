"""Docker Engine API client.

Only the handful of read-only calls the scrapers need are implemented:
ping, container listing/inspection/stats, image listing and daemon info.
Responses are parsed into small typed models so scrapers never touch raw
JSON.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"
DEFAULT_REQUEST_TIMEOUT = 10.0


# =============================================================================
# Exceptions
# =============================================================================


class DockerAPIError(Exception):
    """Raised when a daemon call fails at the transport or daemon level."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class DockerResponseError(DockerAPIError):
    """Raised when a daemon response body cannot be read or parsed."""


# =============================================================================
# Models
# =============================================================================


def _as_int(value: Any) -> int:
    """Convert a JSON number, treating a missing value as zero."""
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"expected a finite number, got {value}")
    return int(value)


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def _as_dict(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"expected an object, got {type(value).__name__}")
    return value


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"expected an array, got {type(value).__name__}")
    return value


@dataclass
class ContainerSummary:
    """Entry of the container list."""

    id: str
    names: list[str] = field(default_factory=list)
    state: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContainerSummary:
        return cls(
            id=_as_str(data.get("Id")),
            names=[_as_str(n) for n in _as_list(data.get("Names"))],
            state=_as_str(data.get("State")),
        )


@dataclass
class ContainerDetails:
    """Subset of a container inspect response."""

    id: str
    name: str
    restart_count: int
    running: bool
    restarting: bool
    started_at: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContainerDetails:
        state = _as_dict(data.get("State"))
        return cls(
            id=_as_str(data.get("Id")),
            name=_as_str(data.get("Name")),
            restart_count=_as_int(data.get("RestartCount")),
            running=bool(state.get("Running", False)),
            restarting=bool(state.get("Restarting", False)),
            started_at=_as_str(state.get("StartedAt")),
        )


@dataclass
class NetworkStats:
    """Byte counters of a single network interface."""

    rx_bytes: int = 0
    tx_bytes: int = 0


@dataclass
class BlkioEntry:
    """One recursive block-IO service-bytes entry."""

    op: str
    value: int


@dataclass
class ContainerStats:
    """One-shot resource usage snapshot of a container.

    ``networks`` is None when the daemon reports no interfaces at all.
    """

    id: str
    name: str
    cpu_total_usage: int
    system_cpu_usage: int
    memory_usage: int
    networks: dict[str, NetworkStats] | None
    io_service_bytes: list[BlkioEntry]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContainerStats:
        cpu_stats = _as_dict(data.get("cpu_stats"))
        cpu_usage = _as_dict(cpu_stats.get("cpu_usage"))
        memory_stats = _as_dict(data.get("memory_stats"))
        blkio_stats = _as_dict(data.get("blkio_stats"))

        networks: dict[str, NetworkStats] | None = None
        if data.get("networks") is not None:
            networks = {
                iface: NetworkStats(
                    rx_bytes=_as_int(_as_dict(counters).get("rx_bytes")),
                    tx_bytes=_as_int(_as_dict(counters).get("tx_bytes")),
                )
                for iface, counters in _as_dict(data["networks"]).items()
            }

        entries = [
            BlkioEntry(
                op=_as_str(_as_dict(entry).get("op")),
                value=_as_int(_as_dict(entry).get("value")),
            )
            for entry in _as_list(blkio_stats.get("io_service_bytes_recursive"))
        ]

        return cls(
            id=_as_str(data.get("id")),
            name=_as_str(data.get("name")),
            cpu_total_usage=_as_int(cpu_usage.get("total_usage")),
            system_cpu_usage=_as_int(cpu_stats.get("system_cpu_usage")),
            memory_usage=_as_int(memory_stats.get("usage")),
            networks=networks,
            io_service_bytes=entries,
        )


@dataclass
class ImageSummary:
    """Entry of the image list."""

    id: str
    repo_tags: list[str]
    size: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageSummary:
        return cls(
            id=_as_str(data.get("Id")),
            repo_tags=[_as_str(t) for t in _as_list(data.get("RepoTags"))],
            size=_as_int(data.get("Size")),
        )


@dataclass
class DaemonInfo:
    """Container counts reported by the daemon info call."""

    containers: int
    containers_running: int
    containers_stopped: int
    containers_paused: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DaemonInfo:
        return cls(
            containers=_as_int(data.get("Containers")),
            containers_running=_as_int(data.get("ContainersRunning")),
            containers_stopped=_as_int(data.get("ContainersStopped")),
            containers_paused=_as_int(data.get("ContainersPaused")),
        )


def _parse(model: Any, data: Any, what: str) -> Any:
    """Build a model from decoded JSON, mapping shape errors to DockerResponseError."""
    try:
        return model.from_dict(_as_dict(data))
    except (TypeError, ValueError, OverflowError, AttributeError) as e:
        raise DockerResponseError(f"malformed {what} response: {e}") from e


def _parse_list(model: Any, data: Any, what: str) -> list[Any]:
    try:
        return [model.from_dict(_as_dict(item)) for item in _as_list(data)]
    except (TypeError, ValueError, OverflowError, AttributeError) as e:
        raise DockerResponseError(f"malformed {what} response: {e}") from e


# =============================================================================
# Client interface
# =============================================================================


class DockerClient(ABC):
    """Abstract interface for the daemon calls the exporter consumes.

    Every method raises DockerAPIError (or DockerResponseError) on failure.
    """

    @abstractmethod
    async def ping(self) -> None:
        """Check that the daemon is reachable."""
        ...

    @abstractmethod
    async def list_containers(self, all: bool = True) -> list[ContainerSummary]:
        """List containers.

        Args:
            all: Include stopped containers.
        """
        ...

    @abstractmethod
    async def inspect_container(self, container_id: str) -> ContainerDetails:
        """Inspect a single container."""
        ...

    @abstractmethod
    async def container_stats(self, container_id: str) -> ContainerStats:
        """Fetch a single resource usage snapshot for a container."""
        ...

    @abstractmethod
    async def list_images(self, all: bool = True) -> list[ImageSummary]:
        """List images.

        Args:
            all: Include intermediate images.
        """
        ...

    @abstractmethod
    async def info(self) -> DaemonInfo:
        """Fetch daemon-wide information."""
        ...

    async def close(self) -> None:
        """Release any resources held by the client."""


class HttpDockerClient(DockerClient):
    """Docker Engine API client over a unix socket or TCP, using aiohttp."""

    def __init__(
        self,
        host: str = DEFAULT_DOCKER_HOST,
        api_version: str | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            host: Daemon address, e.g. unix:///var/run/docker.sock or tcp://host:2375.
            api_version: Optional API version prefix, e.g. "1.41".
            timeout: Per-request timeout in seconds.
        """
        self.host = host
        self.api_version = api_version
        self.timeout = timeout
        self._socket_path, self.base_url = self._resolve_host(host)
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_env(cls, **kwargs: Any) -> HttpDockerClient:
        """Create a client for the daemon named by DOCKER_HOST."""
        return cls(host=os.environ.get("DOCKER_HOST", DEFAULT_DOCKER_HOST), **kwargs)

    @staticmethod
    def _resolve_host(host: str) -> tuple[str | None, str]:
        """Split a daemon address into (unix socket path, HTTP base URL)."""
        parts = urlsplit(host)
        if parts.scheme == "unix":
            return parts.path, "http://localhost"
        if parts.scheme == "tcp":
            return None, f"http://{parts.netloc}"
        if parts.scheme in ("http", "https"):
            return None, f"{parts.scheme}://{parts.netloc}"
        raise ValueError(f"Unsupported docker host: {host}")

    def _session_or_create(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = (
                aiohttp.UnixConnector(path=self._socket_path)
                if self._socket_path
                else None
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    def _url(self, path: str) -> str:
        if self.api_version:
            return f"{self.base_url}/v{self.api_version}{path}"
        return f"{self.base_url}{path}"

    async def _get(self, path: str, params: dict[str, str] | None = None) -> bytes:
        session = self._session_or_create()
        try:
            async with session.get(self._url(path), params=params) as response:
                body = await response.read()
                if response.status >= 400:
                    message = body.decode(errors="replace").strip()
                    raise DockerAPIError(
                        f"GET {path} returned {response.status}: {message}",
                        status=response.status,
                    )
                return body
        except aiohttp.ClientError as e:
            raise DockerAPIError(f"GET {path} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise DockerAPIError(f"GET {path} timed out") from e

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        body = await self._get(path, params)
        try:
            return json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DockerResponseError(f"GET {path} returned invalid JSON: {e}") from e

    async def ping(self) -> None:
        await self._get("/_ping")

    async def list_containers(self, all: bool = True) -> list[ContainerSummary]:
        data = await self._get_json("/containers/json", {"all": "1" if all else "0"})
        return _parse_list(ContainerSummary, data, "container list")

    async def inspect_container(self, container_id: str) -> ContainerDetails:
        data = await self._get_json(f"/containers/{container_id}/json")
        return _parse(ContainerDetails, data, "container inspect")

    async def container_stats(self, container_id: str) -> ContainerStats:
        data = await self._get_json(
            f"/containers/{container_id}/stats", {"stream": "false"}
        )
        return _parse(ContainerStats, data, "container stats")

    async def list_images(self, all: bool = True) -> list[ImageSummary]:
        data = await self._get_json("/images/json", {"all": "1" if all else "0"})
        return _parse_list(ImageSummary, data, "image list")

    async def info(self) -> DaemonInfo:
        data = await self._get_json("/info")
        return _parse(DaemonInfo, data, "info")

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> HttpDockerClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()


class MockDockerClient(DockerClient):
    """In-memory Docker client for tests.

    Containers, inspect results, stats and images are injected directly.
    Assign an exception to one of the ``*_error`` attributes (or to an
    entry of ``inspect_errors``/``stats_errors``) to make a call fail.
    """

    def __init__(
        self,
        containers: list[ContainerDetails] | None = None,
        images: list[ImageSummary] | None = None,
        info: DaemonInfo | None = None,
    ):
        self.details: dict[str, ContainerDetails] = {}
        self.stats: dict[str, ContainerStats] = {}
        self.images: list[ImageSummary] = list(images or [])
        self.daemon_info = info or DaemonInfo(0, 0, 0)

        self.ping_error: Exception | None = None
        self.list_error: Exception | None = None
        self.images_error: Exception | None = None
        self.info_error: Exception | None = None
        self.inspect_errors: dict[str, Exception] = {}
        self.stats_errors: dict[str, Exception] = {}

        self.calls: list[str] = []

        for container in containers or []:
            self.add_container(container)

    def add_container(
        self, details: ContainerDetails, stats: ContainerStats | None = None
    ) -> None:
        """Register a container and, optionally, its stats snapshot."""
        self.details[details.id] = details
        if stats is not None:
            self.stats[details.id] = stats

    async def ping(self) -> None:
        self.calls.append("ping")
        if self.ping_error:
            raise self.ping_error

    async def list_containers(self, all: bool = True) -> list[ContainerSummary]:
        self.calls.append("list_containers")
        if self.list_error:
            raise self.list_error
        return [
            ContainerSummary(id=d.id, names=[d.name] if d.name else [])
            for d in self.details.values()
            if all or d.running
        ]

    async def inspect_container(self, container_id: str) -> ContainerDetails:
        self.calls.append(f"inspect:{container_id}")
        if container_id in self.inspect_errors:
            raise self.inspect_errors[container_id]
        if container_id not in self.details:
            raise DockerAPIError(f"No such container: {container_id}", status=404)
        return self.details[container_id]

    async def container_stats(self, container_id: str) -> ContainerStats:
        self.calls.append(f"stats:{container_id}")
        if container_id in self.stats_errors:
            raise self.stats_errors[container_id]
        if container_id not in self.stats:
            raise DockerAPIError(f"No such container: {container_id}", status=404)
        return self.stats[container_id]

    async def list_images(self, all: bool = True) -> list[ImageSummary]:
        self.calls.append("list_images")
        if self.images_error:
            raise self.images_error
        return list(self.images)

    async def info(self) -> DaemonInfo:
        self.calls.append("info")
        if self.info_error:
            raise self.info_error
        return self.daemon_info

"""Container status and resource scraper.

Lists every container, then inspects and measures them concurrently. Each
per-container task writes its own samples to the shared stream; failures
of one container never affect the others or the scraper outcome.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from datetime import datetime

from docker_exporter.docker_client import (
    ContainerDetails,
    ContainerStats,
    DockerAPIError,
    DockerClient,
)
from docker_exporter.metrics import (
    CPU_CAPACITY,
    CPU_USED,
    DISK_READ,
    DISK_WRITE,
    DURATION_BUCKETS,
    INSPECT_DURATION,
    MEMORY_USED,
    NETWORK_IN,
    NETWORK_OUT,
    RESTART_COUNT,
    RUNNING_STATE,
    START_TIME,
    MetricSample,
    MetricStream,
    gauge,
    histogram,
)
from docker_exporter.scrapers.base import CollectionError, Scraper

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 16
SHORT_ID_LENGTH = 12

RUNNING = 1.0
RESTARTING = 0.5
STOPPED = 0.0

_RFC3339_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


def parse_rfc3339(value: str) -> float | None:
    """Parse an RFC3339 timestamp with up to nanosecond precision.

    Returns:
        Unix timestamp in whole seconds, or None if the value is unparsable.
    """
    match = _RFC3339_RE.match(value.strip())
    if not match:
        return None
    base, fraction, offset = match.groups()
    micros = (fraction or "")[:6].ljust(6, "0")
    if offset == "Z":
        offset = "+00:00"
    try:
        parsed = datetime.fromisoformat(f"{base}.{micros}{offset}")
    except ValueError:
        return None
    return float(math.floor(parsed.timestamp()))


def display_name(details: ContainerDetails) -> str:
    """Runtime-assigned name without its leading slash, else the short id."""
    name = details.name.lstrip("/")
    if name:
        return name
    return details.id[:SHORT_ID_LENGTH]


def running_state(details: ContainerDetails) -> float:
    if details.running:
        return RUNNING
    if details.restarting:
        return RESTARTING
    return STOPPED


def status_samples(details: ContainerDetails) -> list[MetricSample]:
    """Restart count, running state and (when running) start time, in that order."""
    name = display_name(details)
    samples = [
        gauge(RESTART_COUNT, details.restart_count, name),
        gauge(RUNNING_STATE, running_state(details), name),
    ]
    if details.running:
        started = parse_rfc3339(details.started_at)
        if started is not None:
            samples.append(gauge(START_TIME, started, name))
    return samples


def resource_samples(name: str, stats: ContainerStats) -> list[MetricSample]:
    """CPU, memory, network and disk samples from one stats snapshot.

    Absent network interfaces and absent block-IO entries are both reported
    as zero.
    """
    rx = tx = 0
    for iface in (stats.networks or {}).values():
        rx += iface.rx_bytes
        tx += iface.tx_bytes

    read = write = 0
    for entry in stats.io_service_bytes:
        op = entry.op.lower()
        if op == "read":
            read += entry.value
        elif op == "write":
            write += entry.value

    return [
        gauge(CPU_USED, stats.cpu_total_usage, name),
        gauge(CPU_CAPACITY, stats.system_cpu_usage, name),
        gauge(MEMORY_USED, stats.memory_usage, name),
        gauge(NETWORK_IN, rx, name),
        gauge(NETWORK_OUT, tx, name),
        gauge(DISK_READ, read, name),
        gauge(DISK_WRITE, write, name),
    ]


class ContainerScraper(Scraper):
    """Per-container status and resource usage."""

    name = "container"
    help = "Collect the container status & resource"

    def __init__(self, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        """Initialize the scraper.

        Args:
            max_concurrency: Upper bound on containers inspected at once.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency

    async def collect(self, client: DockerClient, stream: MetricStream) -> None:
        try:
            containers = await client.list_containers(all=True)
        except DockerAPIError as e:
            raise CollectionError(self.name, f"list containers failed: {e}") from e

        semaphore = asyncio.Semaphore(self.max_concurrency)
        inspect_durations: list[float] = []

        await asyncio.gather(
            *(
                self._collect_one(client, c.id, stream, semaphore, inspect_durations)
                for c in containers
            )
        )

        stream.emit(histogram(INSPECT_DURATION, inspect_durations, DURATION_BUCKETS))

    async def _collect_one(
        self,
        client: DockerClient,
        container_id: str,
        stream: MetricStream,
        semaphore: asyncio.Semaphore,
        inspect_durations: list[float],
    ) -> None:
        short_id = container_id[:SHORT_ID_LENGTH]
        async with semaphore:
            try:
                await self._scrape_container(
                    client, container_id, stream, inspect_durations
                )
            except Exception as e:
                logger.exception(f"container {short_id} skipped: {e}")

    async def _scrape_container(
        self,
        client: DockerClient,
        container_id: str,
        stream: MetricStream,
        inspect_durations: list[float],
    ) -> None:
        short_id = container_id[:SHORT_ID_LENGTH]
        started = time.perf_counter()
        try:
            details = await client.inspect_container(container_id)
        except DockerAPIError as e:
            logger.error(f"inspect container {short_id} err: {e}")
            return
        finally:
            inspect_durations.append(time.perf_counter() - started)

        stream.extend(status_samples(details))
        if not details.running:
            return

        try:
            stats = await client.container_stats(container_id)
        except DockerAPIError as e:
            logger.error(f"stats for container {short_id} err: {e}")
            return

        stream.extend(resource_samples(display_name(details), stats))

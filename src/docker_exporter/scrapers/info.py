"""Daemon info scraper."""

from __future__ import annotations

from docker_exporter.docker_client import DockerAPIError, DockerClient
from docker_exporter.metrics import CONTAINERS, MetricStream, gauge
from docker_exporter.scrapers.base import CollectionError, Scraper


class InfoScraper(Scraper):
    """Container counts by status, from a single daemon info call."""

    name = "info"
    help = "Collect the server info"

    async def collect(self, client: DockerClient, stream: MetricStream) -> None:
        try:
            info = await client.info()
        except DockerAPIError as e:
            raise CollectionError(self.name, f"daemon info failed: {e}") from e

        stream.emit(gauge(CONTAINERS, info.containers, "total"))
        stream.emit(gauge(CONTAINERS, info.containers_running, "running"))
        stream.emit(gauge(CONTAINERS, info.containers_stopped, "stopped"))

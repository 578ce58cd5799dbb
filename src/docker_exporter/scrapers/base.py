"""Scraper contract."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docker_exporter.docker_client import DockerClient
from docker_exporter.metrics import MetricStream


class CollectionError(Exception):
    """Raised when a scraper cannot collect its category of metrics."""

    def __init__(self, scraper: str, message: str):
        super().__init__(f"{scraper}: {message}")
        self.scraper = scraper


class Scraper(ABC):
    """An independently failable unit collecting one category of metrics.

    Scrapers are stateless: nothing is kept between scrape cycles. On
    failure a scraper may already have emitted part of its samples.
    """

    #: Unique identifier, used as config key and as the error-counter label.
    name: str = ""

    #: Human-readable description, used as CLI help.
    help: str = ""

    @abstractmethod
    async def collect(self, client: DockerClient, stream: MetricStream) -> None:
        """Query the daemon and write samples to the stream.

        Raises:
            CollectionError: If the underlying daemon call fails.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

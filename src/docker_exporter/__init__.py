"""Prometheus exporter for Docker daemon, container and image metrics."""

__version__ = "0.1.0"

from docker_exporter.docker_client import (  # noqa: E402
    DockerAPIError,
    DockerClient,
    DockerResponseError,
    HttpDockerClient,
    MockDockerClient,
)
from docker_exporter.exporter import (  # noqa: E402
    CycleReport,
    CycleState,
    Exporter,
    ExporterMetrics,
    ScrapeOutcome,
)
from docker_exporter.metrics import (  # noqa: E402
    MetricDescriptor,
    MetricKind,
    MetricSample,
    MetricStream,
)
from docker_exporter.scrapers import (  # noqa: E402
    CollectionError,
    ContainerScraper,
    ImageScraper,
    InfoScraper,
    Scraper,
    build_scrapers,
)

__all__ = [
    "CollectionError",
    "ContainerScraper",
    "CycleReport",
    "CycleState",
    "DockerAPIError",
    "DockerClient",
    "DockerResponseError",
    "Exporter",
    "ExporterMetrics",
    "HttpDockerClient",
    "ImageScraper",
    "InfoScraper",
    "MetricDescriptor",
    "MetricKind",
    "MetricSample",
    "MetricStream",
    "MockDockerClient",
    "ScrapeOutcome",
    "Scraper",
    "build_scrapers",
]

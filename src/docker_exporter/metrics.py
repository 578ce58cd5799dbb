"""Metric descriptors and samples.

Every metric the exporter can emit is declared here once, at import time.
Descriptors are frozen and shared read-only by all scrapers; samples are
created per observation and written straight to a MetricStream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Sequence

NAMESPACE = "docker"
EXPORTER_SUBSYSTEM = "exporter"
CONTAINER_SUBSYSTEM = "container"
IMAGE_SUBSYSTEM = "image"

# Histogram buckets for daemon call durations, in seconds
DURATION_BUCKETS: tuple[float, ...] = (0.005, 0.01, 0.05, 0.1, 0.5, 1, 5)


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty name parts with underscores."""
    return "_".join(part for part in (namespace, subsystem, name) if part)


class MetricKind(Enum):
    """Value type of a sample."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class MetricDescriptor:
    """Immutable schema of a metric: its name parts, help text and label names."""

    namespace: str
    subsystem: str
    name: str
    help: str
    label_names: tuple[str, ...] = ()

    @property
    def fq_name(self) -> str:
        """Fully-qualified metric name."""
        return build_fq_name(self.namespace, self.subsystem, self.name)


@dataclass(frozen=True)
class MetricSample:
    """A single value emitted against a descriptor.

    Attributes:
        descriptor: The metric this sample belongs to.
        kind: Counter, gauge or histogram.
        value: Sample value. For histograms, the sum of observations.
        label_values: Positional label values, same arity as the descriptor.
        buckets: Histogram only. Cumulative (upper bound, count) pairs,
            the last one being +Inf.
    """

    descriptor: MetricDescriptor
    kind: MetricKind
    value: float
    label_values: tuple[str, ...] = ()
    buckets: tuple[tuple[float, int], ...] = field(default=())

    def __post_init__(self) -> None:
        expected = len(self.descriptor.label_names)
        if len(self.label_values) != expected:
            raise ValueError(
                f"{self.descriptor.fq_name}: expected {expected} label values, "
                f"got {len(self.label_values)}"
            )

    @property
    def labels(self) -> dict[str, str]:
        """Label names mapped to their values."""
        return dict(zip(self.descriptor.label_names, self.label_values))

    @property
    def count(self) -> int:
        """Number of observations of a histogram sample."""
        return self.buckets[-1][1] if self.buckets else 0


def gauge(descriptor: MetricDescriptor, value: float, *label_values: str) -> MetricSample:
    """Create a gauge sample."""
    return MetricSample(descriptor, MetricKind.GAUGE, float(value), tuple(label_values))


def counter(descriptor: MetricDescriptor, value: float, *label_values: str) -> MetricSample:
    """Create a counter sample."""
    return MetricSample(descriptor, MetricKind.COUNTER, float(value), tuple(label_values))


def histogram(
    descriptor: MetricDescriptor,
    observations: Iterable[float],
    buckets: Sequence[float] = DURATION_BUCKETS,
    label_values: Sequence[str] = (),
) -> MetricSample:
    """Create a histogram sample from a batch of observations.

    Args:
        descriptor: Histogram descriptor.
        observations: Observed values.
        buckets: Upper bounds, ascending. +Inf is always appended.
        label_values: Positional label values.

    Returns:
        MetricSample with cumulative bucket counts and the observation sum.
    """
    values = list(observations)
    cumulative = [
        (float(bound), sum(1 for v in values if v <= bound)) for bound in buckets
    ]
    cumulative.append((float("inf"), len(values)))
    return MetricSample(
        descriptor,
        MetricKind.HISTOGRAM,
        float(sum(values)),
        tuple(label_values),
        tuple(cumulative),
    )


class MetricStream:
    """Output stream shared by every task of a scrape cycle.

    Producers only append, and appending never awaits, so concurrent
    tasks on the event loop cannot interleave inside an emit.
    """

    def __init__(self) -> None:
        self._samples: list[MetricSample] = []

    def emit(self, sample: MetricSample) -> None:
        self._samples.append(sample)

    def extend(self, samples: Iterable[MetricSample]) -> None:
        self._samples.extend(samples)

    def samples(self) -> list[MetricSample]:
        """Snapshot of everything emitted so far, in emission order."""
        return list(self._samples)

    def __iter__(self) -> Iterator[MetricSample]:
        return iter(self.samples())

    def __len__(self) -> int:
        return len(self._samples)


# =============================================================================
# Exporter health
# =============================================================================

SCRAPE_DURATION = MetricDescriptor(
    NAMESPACE,
    EXPORTER_SUBSYSTEM,
    "collector_duration_seconds",
    "Collector time duration.",
    ("collector",),
)
SCRAPES_TOTAL = MetricDescriptor(
    NAMESPACE,
    EXPORTER_SUBSYSTEM,
    "scrapes_total",
    "Total number of times docker was scraped for metrics.",
)
SCRAPE_ERRORS_TOTAL = MetricDescriptor(
    NAMESPACE,
    EXPORTER_SUBSYSTEM,
    "scrape_errors_total",
    "Total number of times an error occurred scraping a docker.",
    ("collector",),
)
LAST_SCRAPE_ERROR = MetricDescriptor(
    NAMESPACE,
    EXPORTER_SUBSYSTEM,
    "last_scrape_error",
    "Whether the last scrape of metrics from docker resulted in an error "
    "(1 for error, 0 for success).",
)
BUILD_INFO = MetricDescriptor(
    NAMESPACE,
    EXPORTER_SUBSYSTEM,
    "build_info",
    "A metric with a constant '1' value labeled by exporter and Python version.",
    ("version", "python_version"),
)
DOCKER_UP = MetricDescriptor(
    NAMESPACE,
    "",
    "up",
    "Whether the docker is up.",
)
SUCCESSFUL_PROBE_TIME = MetricDescriptor(
    NAMESPACE,
    "",
    "probe_successfully_completed_time",
    "When the last Docker probe was successfully completed.",
)

# =============================================================================
# Daemon info
# =============================================================================

CONTAINERS = MetricDescriptor(
    NAMESPACE,
    "",
    "containers",
    "Number of containers that exist.",
    ("status",),
)

# =============================================================================
# Containers
# =============================================================================

CONTAINER_LABELS = ("name",)

INSPECT_DURATION = MetricDescriptor(
    NAMESPACE,
    "",
    "probe_inspect_duration_seconds",
    "How long it takes to query Docker for the basic information about a "
    "single container. Includes failed requests.",
)
RESTART_COUNT = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "restart_count",
    "Number of times the runtime has restarted this container without explicit "
    "user action, since the container was last started.",
    CONTAINER_LABELS,
)
RUNNING_STATE = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "running_state",
    "Whether the container is running (1), restarting (0.5) or stopped (0).",
    CONTAINER_LABELS,
)
START_TIME = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "start_time_seconds",
    "Timestamp indicating when the container was started. Does not get reset "
    "by automatic restarts.",
    CONTAINER_LABELS,
)
CPU_USED = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "cpu_used_total",
    "Accumulated CPU usage of a container, in unspecified units, averaged for "
    "all logical CPUs usable by the container.",
    CONTAINER_LABELS,
)
CPU_CAPACITY = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "cpu_capacity_total",
    "All potential CPU usage available to a container, in unspecified units, "
    "averaged for all logical CPUs usable by the container. Start point of "
    "measurement is undefined - only relative values should be used in analytics.",
    CONTAINER_LABELS,
)
MEMORY_USED = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "memory_used_bytes",
    "Memory usage of a container.",
    CONTAINER_LABELS,
)
NETWORK_IN = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "network_in_bytes",
    "Total bytes received by the container's network interfaces.",
    CONTAINER_LABELS,
)
NETWORK_OUT = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "network_out_bytes",
    "Total bytes sent by the container's network interfaces.",
    CONTAINER_LABELS,
)
DISK_READ = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "disk_read_bytes",
    "Total bytes read from disk by a container.",
    CONTAINER_LABELS,
)
DISK_WRITE = MetricDescriptor(
    NAMESPACE,
    CONTAINER_SUBSYSTEM,
    "disk_write_bytes",
    "Total bytes written to disk by a container.",
    CONTAINER_LABELS,
)

# =============================================================================
# Images
# =============================================================================

IMAGE_SIZE = MetricDescriptor(
    NAMESPACE,
    IMAGE_SUBSYSTEM,
    "size",
    "Docker image size.",
    ("id", "repo", "tag"),
)

DESCRIPTORS: tuple[MetricDescriptor, ...] = (
    SCRAPE_DURATION,
    SCRAPES_TOTAL,
    SCRAPE_ERRORS_TOTAL,
    LAST_SCRAPE_ERROR,
    BUILD_INFO,
    DOCKER_UP,
    SUCCESSFUL_PROBE_TIME,
    CONTAINERS,
    INSPECT_DURATION,
    RESTART_COUNT,
    RUNNING_STATE,
    START_TIME,
    CPU_USED,
    CPU_CAPACITY,
    MEMORY_USED,
    NETWORK_IN,
    NETWORK_OUT,
    DISK_READ,
    DISK_WRITE,
    IMAGE_SIZE,
)

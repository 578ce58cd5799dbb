"""Prometheus text rendering of a scrape snapshot."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    HistogramMetricFamily,
    Metric,
)
from prometheus_client.utils import floatToGoString

from docker_exporter.metrics import MetricDescriptor, MetricKind, MetricSample

logger = logging.getLogger(__name__)


def _family(descriptor: MetricDescriptor, kind: MetricKind) -> Metric:
    labels = list(descriptor.label_names)
    if kind is MetricKind.COUNTER:
        return CounterMetricFamily(descriptor.fq_name, descriptor.help, labels=labels)
    if kind is MetricKind.HISTOGRAM:
        return HistogramMetricFamily(descriptor.fq_name, descriptor.help, labels=labels)
    return GaugeMetricFamily(descriptor.fq_name, descriptor.help, labels=labels)


class SnapshotCollector:
    """prometheus_client collector exposing one fixed list of samples.

    Samples are grouped into one family per descriptor, in first-seen
    order. A repeated label set within a family is dropped with a warning.
    """

    def __init__(self, samples: Iterable[MetricSample]):
        self.samples = list(samples)

    def collect(self) -> Iterator[Metric]:
        families: dict[MetricDescriptor, Metric] = {}
        seen: set[tuple[MetricDescriptor, tuple[str, ...]]] = set()

        for sample in self.samples:
            key = (sample.descriptor, sample.label_values)
            if key in seen:
                logger.warning(
                    f"Dropping duplicate sample {sample.descriptor.fq_name}"
                    f"{sample.labels}"
                )
                continue
            seen.add(key)

            family = families.get(sample.descriptor)
            if family is None:
                family = _family(sample.descriptor, sample.kind)
                families[sample.descriptor] = family

            if sample.kind is MetricKind.HISTOGRAM:
                family.add_metric(
                    list(sample.label_values),
                    [(floatToGoString(le), count) for le, count in sample.buckets],
                    sample.value,
                )
            else:
                family.add_metric(list(sample.label_values), sample.value)

        yield from families.values()


def render(samples: Iterable[MetricSample]) -> bytes:
    """Render samples in the Prometheus text exposition format."""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(SnapshotCollector(samples))
    return generate_latest(registry)

"""Tests for metric descriptors, samples and the output stream."""

from __future__ import annotations

import math

import pytest

from docker_exporter.metrics import (
    CONTAINERS,
    DESCRIPTORS,
    DOCKER_UP,
    DURATION_BUCKETS,
    IMAGE_SIZE,
    INSPECT_DURATION,
    SCRAPE_DURATION,
    MetricKind,
    MetricSample,
    MetricStream,
    build_fq_name,
    counter,
    gauge,
    histogram,
)


class TestDescriptors:
    """Tests for the descriptor registry."""

    def test_fq_name_skips_empty_subsystem(self):
        """Descriptors without subsystem join namespace and name only."""
        assert DOCKER_UP.fq_name == "docker_up"
        assert CONTAINERS.fq_name == "docker_containers"

    def test_fq_name_with_subsystem(self):
        assert SCRAPE_DURATION.fq_name == "docker_exporter_collector_duration_seconds"
        assert IMAGE_SIZE.fq_name == "docker_image_size"

    def test_build_fq_name(self):
        assert build_fq_name("a", "", "c") == "a_c"
        assert build_fq_name("a", "b", "c") == "a_b_c"

    def test_descriptor_names_are_unique(self):
        names = [d.fq_name for d in DESCRIPTORS]
        assert len(names) == len(set(names))

    def test_descriptors_are_immutable(self):
        with pytest.raises(AttributeError):
            DOCKER_UP.name = "down"  # type: ignore[misc]


class TestSamples:
    """Tests for sample construction."""

    def test_gauge_sample(self):
        sample = gauge(CONTAINERS, 3, "running")

        assert sample.kind is MetricKind.GAUGE
        assert sample.value == 3.0
        assert sample.labels == {"status": "running"}

    def test_counter_sample(self):
        sample = counter(SCRAPE_DURATION, 2, "info")
        assert sample.kind is MetricKind.COUNTER

    def test_label_arity_is_enforced(self):
        """Samples MUST carry exactly one value per descriptor label."""
        with pytest.raises(ValueError, match="expected 3 label values"):
            gauge(IMAGE_SIZE, 10, "abc", "repo")

    def test_unlabeled_descriptor_rejects_labels(self):
        with pytest.raises(ValueError):
            MetricSample(DOCKER_UP, MetricKind.GAUGE, 1.0, ("extra",))


class TestHistogram:
    """Tests for per-cycle histogram samples."""

    def test_cumulative_buckets(self):
        sample = histogram(INSPECT_DURATION, [0.002, 0.03, 0.7, 10.0])

        bounds = dict(sample.buckets)
        assert bounds[0.005] == 1
        assert bounds[0.01] == 1
        assert bounds[0.05] == 2
        assert bounds[1.0] == 3
        assert bounds[5.0] == 3
        assert bounds[math.inf] == 4
        assert sample.count == 4
        assert sample.value == pytest.approx(10.732)

    def test_empty_histogram(self):
        sample = histogram(INSPECT_DURATION, [])

        assert sample.count == 0
        assert sample.value == 0.0
        assert len(sample.buckets) == len(DURATION_BUCKETS) + 1

    def test_last_bucket_is_infinity(self):
        sample = histogram(INSPECT_DURATION, [0.1], buckets=[0.5])
        assert sample.buckets == ((0.5, 1), (math.inf, 1))


class TestMetricStream:
    """Tests for the shared output stream."""

    def test_emit_preserves_order(self):
        stream = MetricStream()
        first = gauge(DOCKER_UP, 1)
        second = gauge(CONTAINERS, 2, "total")

        stream.emit(first)
        stream.emit(second)

        assert stream.samples() == [first, second]
        assert len(stream) == 2

    def test_samples_returns_a_copy(self):
        stream = MetricStream()
        stream.emit(gauge(DOCKER_UP, 1))

        snapshot = stream.samples()
        stream.emit(gauge(DOCKER_UP, 0))

        assert len(snapshot) == 1
        assert len(list(stream)) == 2

"""Property-based tests for exporter invariants.

Uses Hypothesis to check that snapshots stay well formed across many
random daemon states.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from docker_exporter.docker_client import (
    ContainerDetails,
    DaemonInfo,
    DockerAPIError,
    ImageSummary,
    MockDockerClient,
)
from docker_exporter.exporter import Exporter
from docker_exporter.metrics import (
    DESCRIPTORS,
    DOCKER_UP,
    INSPECT_DURATION,
    SCRAPE_DURATION,
    histogram,
)
from docker_exporter.scrapers import build_scrapers
from docker_exporter.scrapers.container import parse_rfc3339
from docker_exporter.scrapers.image import short_image_id, split_repo_tag


# =============================================================================
# Custom Strategies
# =============================================================================

hex_ids = st.text(alphabet="0123456789abcdef", min_size=20, max_size=64)

container_names = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyz0123456789_-",
    min_size=1,
    max_size=20,
).map(lambda s: f"/{s}")

containers = st.builds(
    ContainerDetails,
    id=hex_ids,
    name=container_names,
    restart_count=st.integers(min_value=0, max_value=100),
    running=st.booleans(),
    restarting=st.booleans(),
    started_at=st.sampled_from(
        ["", "0001-01-01T00:00:00Z", "2024-05-01T12:30:45.123456789Z", "garbage"]
    ),
)

repo_parts = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=12)

images = st.builds(
    ImageSummary,
    id=hex_ids.map(lambda s: f"sha256:{s}"),
    repo_tags=st.lists(
        st.one_of(
            st.tuples(repo_parts, repo_parts).map(lambda p: f"{p[0]}:{p[1]}"),
            repo_parts,
        ),
        max_size=2,
    ),
    size=st.integers(min_value=0, max_value=10**12),
)


def run_cycle(client: MockDockerClient) -> list:
    exporter = Exporter(client, build_scrapers(), scrape_timeout=0)
    return asyncio.run(exporter.collect())


# =============================================================================
# Snapshot Invariants
# =============================================================================


class TestSnapshotInvariants:
    """Property tests for whole scrape cycles."""

    @given(
        details=st.lists(
            containers, max_size=6, unique_by=(lambda c: c.id, lambda c: c.name)
        ),
        image_list=st.lists(images, max_size=6),
    )
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_label_sets_unique_per_family(self, details, image_list):
        """A snapshot MUST NOT repeat a label set within a metric family."""
        client = MockDockerClient(
            containers=details,
            images=image_list,
            info=DaemonInfo(len(details), 0, len(details)),
        )

        samples = run_cycle(client)

        keys = [(s.descriptor.fq_name, s.label_values) for s in samples]
        assert len(keys) == len(set(keys))

    @given(details=st.lists(containers, max_size=6, unique_by=lambda c: c.id))
    @settings(max_examples=50)
    def test_every_sample_matches_its_descriptor(self, details):
        client = MockDockerClient(containers=details)

        samples = run_cycle(client)

        for sample in samples:
            assert sample.descriptor in DESCRIPTORS
            assert len(sample.label_values) == len(sample.descriptor.label_names)

    @given(
        details=st.lists(containers, max_size=4, unique_by=lambda c: c.id),
        ping_fails=st.booleans(),
        images_fail=st.booleans(),
    )
    @settings(max_examples=50)
    def test_up_and_durations_exactly_once(self, details, ping_fails, images_fail):
        client = MockDockerClient(containers=details)
        if ping_fails:
            client.ping_error = DockerAPIError("down")
        if images_fail:
            client.images_error = DockerAPIError("busy")

        samples = run_cycle(client)

        assert [s.value for s in samples if s.descriptor == DOCKER_UP] == [
            0.0 if ping_fails else 1.0
        ]
        durations = [s.label_values[0] for s in samples if s.descriptor == SCRAPE_DURATION]
        expected = [] if ping_fails else ["container", "image", "info", "ping"]
        assert sorted(durations) == expected


# =============================================================================
# Helper Invariants
# =============================================================================


class TestHelperInvariants:
    """Property tests for parsing helpers."""

    @given(repo=repo_parts, tag=repo_parts)
    def test_split_repo_tag(self, repo, tag):
        assert split_repo_tag(f"{repo}:{tag}") == (repo, tag)

    @given(host=repo_parts, port=st.integers(min_value=1, max_value=65535), repo=repo_parts)
    def test_registry_port_is_not_a_tag(self, host, port, repo):
        with pytest.raises(ValueError):
            split_repo_tag(f"{host}:{port}/{repo}")

    @given(digest=hex_ids)
    def test_short_image_id(self, digest):
        short = short_image_id(f"sha256:{digest}")
        assert short == digest[:12]
        assert len(short) == 12

    @given(
        observations=st.lists(
            st.floats(min_value=0, max_value=100, allow_nan=False), max_size=50
        )
    )
    def test_histogram_buckets_are_cumulative(self, observations):
        sample = histogram(INSPECT_DURATION, observations)

        counts = [count for _, count in sample.buckets]
        assert counts == sorted(counts)
        assert counts[-1] == len(observations)

    @given(
        seconds=st.integers(min_value=0, max_value=4_000_000_000),
        fraction=st.text(alphabet="0123456789", min_size=0, max_size=9),
    )
    def test_rfc3339_ignores_fraction(self, seconds, fraction):
        stamp = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%S"
        )
        suffix = f".{fraction}" if fraction else ""

        assert parse_rfc3339(f"{stamp}{suffix}Z") == float(seconds)

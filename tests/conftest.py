"""Shared fixtures for docker_exporter tests."""

from __future__ import annotations

import pytest

from docker_exporter.docker_client import (
    BlkioEntry,
    ContainerDetails,
    ContainerStats,
    DaemonInfo,
    ImageSummary,
    MockDockerClient,
    NetworkStats,
)


def make_details(
    container_id: str = "a1b2c3d4e5f6a7b8c9d0",
    name: str = "/web",
    running: bool = True,
    restarting: bool = False,
    restart_count: int = 0,
    started_at: str = "2024-05-01T12:30:45.123456789Z",
) -> ContainerDetails:
    """Build an inspect result."""
    return ContainerDetails(
        id=container_id,
        name=name,
        restart_count=restart_count,
        running=running,
        restarting=restarting,
        started_at=started_at,
    )


def make_stats(
    container_id: str = "a1b2c3d4e5f6a7b8c9d0",
    name: str = "/web",
    networks: dict[str, NetworkStats] | None = None,
    io_service_bytes: list[BlkioEntry] | None = None,
) -> ContainerStats:
    """Build a stats snapshot with fixed CPU and memory figures."""
    return ContainerStats(
        id=container_id,
        name=name,
        cpu_total_usage=1500,
        system_cpu_usage=90000,
        memory_usage=4096,
        networks=networks,
        io_service_bytes=io_service_bytes or [],
    )


@pytest.fixture
def details_factory():
    """Factory for ContainerDetails."""
    return make_details


@pytest.fixture
def stats_factory():
    """Factory for ContainerStats."""
    return make_stats


@pytest.fixture
def mock_docker():
    """A daemon with one running container, one stopped container and one image."""
    client = MockDockerClient(
        images=[
            ImageSummary(
                id="sha256:abcdef1234567890abcdef1234567890",
                repo_tags=["nginx:1.25"],
                size=187_000_000,
            )
        ],
        info=DaemonInfo(containers=2, containers_running=1, containers_stopped=1),
    )
    client.add_container(
        make_details("a1b2c3d4e5f6a7b8c9d0", "/web"),
        make_stats(
            "a1b2c3d4e5f6a7b8c9d0",
            "/web",
            networks={"eth0": NetworkStats(rx_bytes=100, tx_bytes=50)},
            io_service_bytes=[BlkioEntry("read", 10), BlkioEntry("write", 20)],
        ),
    )
    client.add_container(
        make_details("ffeeddccbbaa99887766", "/worker", running=False, started_at="")
    )
    return client

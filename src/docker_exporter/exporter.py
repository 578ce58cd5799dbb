"""Scrape orchestration.

One call to :meth:`Exporter.collect` is one scrape cycle, moving through
IDLE -> PINGING -> SCRAPING -> DONE. When the ping fails the cycle goes
straight from PINGING to DONE and no scraper runs.

A failing ping is fatal for the cycle; a failing scraper is counted and
logged but never stops its siblings.
"""

from __future__ import annotations

import asyncio
import logging
import platform
import time
from dataclasses import dataclass, field
from enum import Enum

from docker_exporter import __version__
from docker_exporter.docker_client import DockerClient
from docker_exporter.metrics import (
    BUILD_INFO,
    DOCKER_UP,
    LAST_SCRAPE_ERROR,
    SCRAPE_DURATION,
    SCRAPE_ERRORS_TOTAL,
    SCRAPES_TOTAL,
    SUCCESSFUL_PROBE_TIME,
    MetricSample,
    MetricStream,
    counter,
    gauge,
)
from docker_exporter.scrapers import Scraper, validate_names

logger = logging.getLogger(__name__)

EXPORTER_NAME = "docker_exporter"
PING_LABEL = "ping"

# Default bound on a whole cycle, in seconds
DEFAULT_SCRAPE_TIMEOUT = 10.0


class CycleState(Enum):
    """Phases of a scrape cycle."""

    IDLE = "idle"
    PINGING = "pinging"
    SCRAPING = "scraping"
    DONE = "done"


@dataclass
class ScrapeOutcome:
    """Result of one scraper in one cycle."""

    scraper: str
    duration_seconds: float
    success: bool
    error: str | None = None


@dataclass
class CycleReport:
    """What happened during a scrape cycle."""

    state: CycleState = CycleState.IDLE
    daemon_up: bool = False
    ping_seconds: float = 0.0
    outcomes: list[ScrapeOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        """Names of the scrapers that failed."""
        return [o.scraper for o in self.outcomes if not o.success]


@dataclass
class ExporterMetrics:
    """Process-level health counters, kept across cycles."""

    collectors: list[str] = field(default_factory=list)
    total_scrapes: int = 0
    scrape_errors: dict[str, int] = field(default_factory=dict)
    last_scrape_error: float = 0.0
    docker_up: float = 0.0
    last_success_time: float = 0.0

    def __post_init__(self) -> None:
        for name in self.collectors:
            self.scrape_errors.setdefault(name, 0)

    def samples(self) -> list[MetricSample]:
        """Current values as samples, in a stable order."""
        samples = [
            counter(SCRAPES_TOTAL, self.total_scrapes),
            gauge(LAST_SCRAPE_ERROR, self.last_scrape_error),
        ]
        samples.extend(
            counter(SCRAPE_ERRORS_TOTAL, count, name)
            for name, count in sorted(self.scrape_errors.items())
        )
        samples.append(gauge(DOCKER_UP, self.docker_up))
        samples.append(gauge(SUCCESSFUL_PROBE_TIME, self.last_success_time))
        samples.append(
            gauge(BUILD_INFO, 1, __version__, platform.python_version())
        )
        return samples


class Exporter:
    """Drives scrape cycles against one Docker daemon."""

    def __init__(
        self,
        client: DockerClient,
        scrapers: list[Scraper],
        scrape_timeout: float | None = DEFAULT_SCRAPE_TIMEOUT,
    ):
        """Initialize the exporter.

        Args:
            client: Daemon client shared by every scraper.
            scrapers: Enabled scrapers. Names must be unique.
            scrape_timeout: Bound on a whole cycle in seconds. None or 0
                disables the bound.
        """
        validate_names(scrapers)
        self.client = client
        self.scrapers = list(scrapers)
        self.scrape_timeout = scrape_timeout or None
        self.metrics = ExporterMetrics(collectors=[s.name for s in self.scrapers])

    async def collect(self) -> list[MetricSample]:
        """Run one cycle and return its full snapshot.

        Never raises for daemon or scraper failures; those are reported
        through the health samples at the end of the snapshot.
        """
        stream = MetricStream()
        await self.scrape(stream)
        stream.extend(self.metrics.samples())
        return stream.samples()

    async def scrape(self, stream: MetricStream) -> CycleReport:
        """Ping the daemon, then run every scraper concurrently.

        Args:
            stream: Stream receiving scraper and duration samples.

        Returns:
            CycleReport describing the cycle.
        """
        report = CycleReport()
        self.metrics.total_scrapes += 1
        deadline = (
            time.monotonic() + self.scrape_timeout if self.scrape_timeout else None
        )

        report.state = CycleState.PINGING
        started = time.perf_counter()
        try:
            await asyncio.wait_for(self.client.ping(), timeout=self._remaining(deadline))
        except Exception as e:
            logger.error(f"Docker daemon unreachable: {str(e) or type(e).__name__}")
            self.metrics.docker_up = 0.0
            self.metrics.last_scrape_error = 1.0
            report.state = CycleState.DONE
            return report

        report.daemon_up = True
        report.ping_seconds = time.perf_counter() - started
        self.metrics.docker_up = 1.0
        stream.emit(gauge(SCRAPE_DURATION, report.ping_seconds, PING_LABEL))

        report.state = CycleState.SCRAPING
        report.outcomes = list(
            await asyncio.gather(
                *(self._run_scraper(s, stream, deadline) for s in self.scrapers)
            )
        )

        self.metrics.last_scrape_error = 1.0 if report.failed else 0.0
        self.metrics.last_success_time = time.time()
        report.state = CycleState.DONE
        logger.debug(
            f"Scrape cycle done: {len(report.outcomes)} scrapers, "
            f"{len(report.failed)} failed"
        )
        return report

    async def _run_scraper(
        self, scraper: Scraper, stream: MetricStream, deadline: float | None
    ) -> ScrapeOutcome:
        """Run one scraper, timing it and absorbing its failure."""
        started = time.perf_counter()
        error: str | None = None
        try:
            await asyncio.wait_for(
                scraper.collect(self.client, stream),
                timeout=self._remaining(deadline),
            )
        except asyncio.TimeoutError:
            error = "timed out"
        except Exception as e:
            error = str(e) or type(e).__name__

        duration = time.perf_counter() - started
        if error is not None:
            logger.error(f"Scraper {scraper.name} failed: {error}")
            self.metrics.scrape_errors[scraper.name] = (
                self.metrics.scrape_errors.get(scraper.name, 0) + 1
            )
        stream.emit(gauge(SCRAPE_DURATION, duration, scraper.name))
        return ScrapeOutcome(
            scraper=scraper.name,
            duration_seconds=duration,
            success=error is None,
            error=error,
        )

    @staticmethod
    def _remaining(deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return max(deadline - time.monotonic(), 0.0)

"""Scraper registry.

The set of scrapers is fixed at import time; configuration only decides
which of them run.
"""

from __future__ import annotations

from typing import Mapping

from docker_exporter.scrapers.base import CollectionError, Scraper
from docker_exporter.scrapers.container import ContainerScraper
from docker_exporter.scrapers.image import ImageScraper
from docker_exporter.scrapers.info import InfoScraper

# Label used for the daemon ping duration; no scraper may take it
RESERVED_NAMES = frozenset({"ping"})

# Scraper class -> enabled by default
SCRAPERS: tuple[tuple[type[Scraper], bool], ...] = (
    (InfoScraper, True),
    (ContainerScraper, True),
    (ImageScraper, True),
)


def scraper_defaults() -> dict[str, bool]:
    """Default enablement keyed by scraper name."""
    return {cls.name: enabled for cls, enabled in SCRAPERS}


def validate_names(scrapers: list[Scraper]) -> None:
    """Reject empty, reserved or duplicate scraper names.

    Raises:
        ValueError: On the first offending name.
    """
    seen: set[str] = set()
    for scraper in scrapers:
        if not scraper.name:
            raise ValueError(f"{scraper!r} has no name")
        if scraper.name in RESERVED_NAMES:
            raise ValueError(f"Scraper name {scraper.name!r} is reserved")
        if scraper.name in seen:
            raise ValueError(f"Duplicate scraper name {scraper.name!r}")
        seen.add(scraper.name)


def build_scrapers(
    enabled: Mapping[str, bool] | None = None,
    container_concurrency: int | None = None,
    include_intermediate_images: bool = True,
) -> list[Scraper]:
    """Instantiate the enabled scrapers in registration order.

    Args:
        enabled: Per-name overrides of the default enablement.
        container_concurrency: Fan-out bound for the container scraper.
        include_intermediate_images: Whether the image scraper lists
            intermediate images.

    Returns:
        Scrapers to run, with validated unique names.
    """
    overrides = dict(enabled or {})
    unknown = set(overrides) - {cls.name for cls, _ in SCRAPERS}
    if unknown:
        raise ValueError(f"Unknown scrapers: {', '.join(sorted(unknown))}")

    scrapers: list[Scraper] = []
    for cls, default in SCRAPERS:
        if not overrides.get(cls.name, default):
            continue
        if cls is ContainerScraper and container_concurrency is not None:
            scrapers.append(ContainerScraper(max_concurrency=container_concurrency))
        elif cls is ImageScraper:
            scrapers.append(ImageScraper(include_intermediate=include_intermediate_images))
        else:
            scrapers.append(cls())

    validate_names(scrapers)
    return scrapers


__all__ = [
    "SCRAPERS",
    "CollectionError",
    "ContainerScraper",
    "ImageScraper",
    "InfoScraper",
    "Scraper",
    "build_scrapers",
    "scraper_defaults",
    "validate_names",
]

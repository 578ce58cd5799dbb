"""Image inventory scraper."""

from __future__ import annotations

import logging

from docker_exporter.docker_client import DockerAPIError, DockerClient, ImageSummary
from docker_exporter.metrics import IMAGE_SIZE, MetricStream, gauge
from docker_exporter.scrapers.base import CollectionError, Scraper

logger = logging.getLogger(__name__)

SHORT_ID_LENGTH = 12

# Reported for images that carry no repository tag at all
UNTAGGED = "<none>"


def short_image_id(image_id: str) -> str:
    """Strip the digest algorithm prefix and keep the first 12 hex characters.

    Example: "sha256:abcdef1234567890..." -> "abcdef123456"
    """
    _, _, digest = image_id.rpartition(":")
    return digest[:SHORT_ID_LENGTH]


def split_repo_tag(repo_tag: str) -> tuple[str, str]:
    """Split "repository:tag" on the last colon.

    Raises:
        ValueError: If the string has no tag, an empty side, or the part
            after the last colon is a registry port rather than a tag.
    """
    repo, sep, tag = repo_tag.rpartition(":")
    if not sep or not repo or not tag or "/" in tag:
        raise ValueError(f"malformed repository tag: {repo_tag!r}")
    return repo, tag


def image_labels(image: ImageSummary) -> tuple[str, str, str]:
    """Label values (id, repo, tag) for an image's primary tag."""
    if not image.repo_tags:
        return short_image_id(image.id), UNTAGGED, UNTAGGED
    repo, tag = split_repo_tag(image.repo_tags[0])
    return short_image_id(image.id), repo, tag


class ImageScraper(Scraper):
    """Size of every image known to the daemon."""

    name = "image"
    help = "Collect the image info"

    def __init__(self, include_intermediate: bool = True):
        self.include_intermediate = include_intermediate

    async def collect(self, client: DockerClient, stream: MetricStream) -> None:
        try:
            images = await client.list_images(all=self.include_intermediate)
        except DockerAPIError as e:
            raise CollectionError(self.name, f"list images failed: {e}") from e

        seen: set[tuple[str, str, str]] = set()
        for image in images:
            try:
                labels = image_labels(image)
            except ValueError as e:
                logger.warning(f"Skipping image {short_image_id(image.id)}: {e}")
                continue

            if labels in seen:
                logger.debug(f"Skipping duplicate image labels {labels}")
                continue
            seen.add(labels)

            stream.emit(gauge(IMAGE_SIZE, image.size, *labels))

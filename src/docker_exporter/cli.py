"""docker-exporter command line.

Usage:
    docker-exporter                                # serve on :9417/metrics
    docker-exporter --web.listen-address :9500     # custom listener
    docker-exporter --no-collect.image             # disable a scraper
    docker-exporter -c docker_exporter.toml        # load settings from file
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable

import click

from docker_exporter import __version__
from docker_exporter.config import (
    LOG_LEVELS,
    ConfigError,
    ExporterConfig,
    load_config,
    parse_listen_address,
)
from docker_exporter.docker_client import HttpDockerClient
from docker_exporter.exporter import EXPORTER_NAME, Exporter
from docker_exporter.log import configure_logging
from docker_exporter.scrapers import SCRAPERS, build_scrapers
from docker_exporter.server import create_app, serve

logger = logging.getLogger(__name__)


def _collector_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add a --collect.<name>/--no-collect.<name> flag per registered scraper."""
    for cls, enabled_by_default in reversed(SCRAPERS):
        default_word = "enabled" if enabled_by_default else "disabled"
        func = click.option(
            f"--collect.{cls.name}/--no-collect.{cls.name}",
            f"collect_{cls.name}",
            default=None,
            help=f"{cls.help} ({default_word} by default).",
        )(func)
    return func


def apply_overrides(config: ExporterConfig, options: dict[str, Any]) -> ExporterConfig:
    """Overlay command-line values that were actually given onto the config."""
    if options.get("listen_address") is not None:
        config.web.listen_address = options["listen_address"]
    if options.get("telemetry_path") is not None:
        config.web.telemetry_path = options["telemetry_path"]
    if options.get("log_level") is not None:
        config.log.level = options["log_level"]
    if options.get("log_output") is not None:
        config.log.output = options["log_output"]
    if options.get("docker_host") is not None:
        config.docker.host = options["docker_host"]
    if options.get("scrape_timeout") is not None:
        config.scrape.timeout = options["scrape_timeout"]
    if options.get("container_concurrency") is not None:
        config.scrape.container_concurrency = options["container_concurrency"]

    for cls, _ in SCRAPERS:
        value = options.get(f"collect_{cls.name}")
        if value is not None:
            config.collectors[cls.name] = value

    config.validate()
    return config


def build_exporter(config: ExporterConfig) -> Exporter:
    """Create the daemon client and exporter described by the config."""
    scrapers = build_scrapers(
        config.collectors,
        container_concurrency=config.scrape.container_concurrency,
        include_intermediate_images=config.scrape.include_intermediate_images,
    )
    for scraper in scrapers:
        logger.info(f"Scraper enabled {scraper.name}")

    client = HttpDockerClient(
        host=config.docker.host,
        api_version=config.docker.api_version,
        timeout=config.docker.request_timeout,
    )
    return Exporter(client, scrapers, scrape_timeout=config.scrape.timeout)


@click.command(name="docker-exporter")
@click.option(
    "-c", "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to config file",
)
@click.option(
    "--web.listen-address", "listen_address",
    help="Address to listen on for web interface and telemetry. [default: :9417]",
)
@click.option(
    "--web.telemetry-path", "telemetry_path",
    help="Path under which to expose metrics. [default: /metrics]",
)
@click.option(
    "--log-level", "log_level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="The logging level. [default: info]",
)
@click.option(
    "--log-output", "log_output",
    type=click.Path(dir_okay=False),
    help="The file to log to. [default: stderr]",
)
@click.option(
    "--docker.host", "docker_host",
    help="Docker daemon address. [default: $DOCKER_HOST or unix:///var/run/docker.sock]",
)
@click.option(
    "--scrape.timeout", "scrape_timeout",
    type=click.FloatRange(min=0),
    help="Upper bound on one scrape in seconds, 0 to disable. [default: 10]",
)
@click.option(
    "--scrape.container-concurrency", "container_concurrency",
    type=click.IntRange(min=1),
    help="Containers inspected concurrently per scrape. [default: 16]",
)
@_collector_options
@click.version_option(version=__version__, prog_name=EXPORTER_NAME)
def main(config_path: Path | None, **options: Any) -> None:
    """Prometheus exporter for Docker daemon, container and image metrics."""
    try:
        config = apply_overrides(load_config(config_path), options)
        configure_logging(config.log.level, config.log.output)
        host, port = parse_listen_address(config.web.listen_address)
        exporter = build_exporter(config)
    except (ConfigError, ValueError, OSError) as e:
        raise click.ClickException(str(e)) from e

    app = create_app(exporter, config.web.telemetry_path)
    try:
        asyncio.run(serve(app, host, port))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()

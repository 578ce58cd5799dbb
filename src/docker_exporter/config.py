"""Exporter configuration management.

Loads configuration from docker_exporter.toml with sensible defaults.
Command-line flags override values read from the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib as tomli  # Python 3.11+ stdlib
except ImportError:
    import tomli  # Backport for older Python

from docker_exporter.docker_client import DEFAULT_DOCKER_HOST, DEFAULT_REQUEST_TIMEOUT
from docker_exporter.scrapers import scraper_defaults
from docker_exporter.scrapers.container import DEFAULT_MAX_CONCURRENCY

CONFIG_FILENAME = "docker_exporter.toml"

LOG_LEVELS = ("debug", "info", "warn", "warning", "error", "fatal", "critical")


class ConfigError(Exception):
    """Raised when configuration values are invalid."""


@dataclass
class WebConfig:
    """HTTP listener configuration."""

    listen_address: str = ":9417"
    telemetry_path: str = "/metrics"


@dataclass
class DockerConfig:
    """Daemon connection configuration."""

    host: str = field(
        default_factory=lambda: os.environ.get("DOCKER_HOST", DEFAULT_DOCKER_HOST)
    )
    api_version: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


@dataclass
class ScrapeConfig:
    """Scrape cycle configuration."""

    timeout: float = 10.0  # Whole-cycle bound in seconds, 0 disables
    container_concurrency: int = DEFAULT_MAX_CONCURRENCY
    include_intermediate_images: bool = True


@dataclass
class LogConfig:
    """Process logging configuration."""

    level: str = "info"
    output: str | None = None  # Log file, stderr if unset


@dataclass
class ExporterConfig:
    """Root configuration for the exporter."""

    web: WebConfig = field(default_factory=WebConfig)
    docker: DockerConfig = field(default_factory=DockerConfig)
    scrape: ScrapeConfig = field(default_factory=ScrapeConfig)
    log: LogConfig = field(default_factory=LogConfig)
    collectors: dict[str, bool] = field(default_factory=scraper_defaults)

    def validate(self) -> None:
        """Check cross-field constraints.

        Raises:
            ConfigError: On the first invalid value.
        """
        if self.scrape.timeout < 0:
            raise ConfigError("scrape.timeout must not be negative")
        if self.scrape.container_concurrency < 1:
            raise ConfigError("scrape.container_concurrency must be at least 1")
        if self.docker.request_timeout <= 0:
            raise ConfigError("docker.request_timeout must be positive")
        if not self.web.telemetry_path.startswith("/"):
            raise ConfigError("web.telemetry_path must start with '/'")
        if self.log.level.lower() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log.level}")
        unknown = set(self.collectors) - set(scraper_defaults())
        if unknown:
            raise ConfigError(f"Unknown collectors: {', '.join(sorted(unknown))}")


def load_config(config_path: Path | None = None) -> ExporterConfig:
    """Load configuration from docker_exporter.toml.

    Args:
        config_path: Path to config file. If None, searches current directory
                     and parent directories for docker_exporter.toml.

    Returns:
        ExporterConfig with values from file or defaults.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    if config_path is None:
        config_path = _find_config_file()

    if config_path is None or not config_path.exists():
        return ExporterConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    config = _parse_config(data)
    config.validate()
    return config


def _find_config_file() -> Path | None:
    """Search for docker_exporter.toml in current and parent directories."""
    current = Path.cwd()

    for directory in [current, *current.parents]:
        config_file = directory / CONFIG_FILENAME
        if config_file.exists():
            return config_file

    return None


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _parse_config(data: dict[str, Any]) -> ExporterConfig:
    """Parse configuration dictionary into ExporterConfig."""
    web_data = _section(data, "web")
    docker_data = _section(data, "docker")
    scrape_data = _section(data, "scrape")
    log_data = _section(data, "log")
    collectors_data = _section(data, "collectors")

    defaults = ExporterConfig()

    try:
        web_config = WebConfig(
            listen_address=str(web_data.get("listen_address", defaults.web.listen_address)),
            telemetry_path=str(web_data.get("telemetry_path", defaults.web.telemetry_path)),
        )

        docker_config = DockerConfig(
            host=str(docker_data.get("host", defaults.docker.host)),
            api_version=docker_data.get("api_version"),
            request_timeout=float(
                docker_data.get("request_timeout", defaults.docker.request_timeout)
            ),
        )

        scrape_config = ScrapeConfig(
            timeout=float(scrape_data.get("timeout", defaults.scrape.timeout)),
            container_concurrency=int(
                scrape_data.get(
                    "container_concurrency", defaults.scrape.container_concurrency
                )
            ),
            include_intermediate_images=bool(
                scrape_data.get(
                    "include_intermediate_images",
                    defaults.scrape.include_intermediate_images,
                )
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config value: {e}") from e

    log_config = LogConfig(
        level=str(log_data.get("level", defaults.log.level)),
        output=log_data.get("output"),
    )

    collectors = scraper_defaults()
    for name, enabled in collectors_data.items():
        if not isinstance(enabled, bool):
            raise ConfigError(f"collectors.{name} must be true or false")
        collectors[name] = enabled

    return ExporterConfig(
        web=web_config,
        docker=docker_config,
        scrape=scrape_config,
        log=log_config,
        collectors=collectors,
    )


def parse_listen_address(address: str) -> tuple[str | None, int]:
    """Split "host:port" (host optional) into its parts.

    Raises:
        ConfigError: If the port is missing or not a number.
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError(f"Listen address needs a port: {address!r}")
    try:
        port_number = int(port)
    except ValueError as e:
        raise ConfigError(f"Invalid port in listen address: {address!r}") from e
    host = host.strip("[]")
    return (host or None), port_number

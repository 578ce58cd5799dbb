"""Tests for the docker-exporter command line."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from docker_exporter import __version__
from docker_exporter.cli import apply_overrides, build_exporter, main
from docker_exporter.config import ConfigError, ExporterConfig
from docker_exporter.server import EXPORTER_KEY


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def served(monkeypatch, tmp_path):
    """Stub out serving and logging."""
    monkeypatch.delenv("DOCKER_HOST", raising=False)
    monkeypatch.chdir(tmp_path)
    with patch("docker_exporter.cli.serve", new=MagicMock()) as serve, patch(
        "docker_exporter.cli.asyncio"
    ), patch("docker_exporter.cli.configure_logging") as configure:
        yield SimpleNamespace(serve=serve, configure_logging=configure)


def exporter_of(served):
    app, host, port = served.serve.call_args.args
    return app[EXPORTER_KEY], host, port


# =============================================================================
# main
# =============================================================================


class TestMain:
    """Tests for the docker-exporter command."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_collectors(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "--collect.container / --no-collect.container" in result.output
        assert "--collect.image / --no-collect.image" in result.output

    def test_defaults(self, runner, served):
        result = runner.invoke(main, [])

        assert result.exit_code == 0, result.output
        exporter, host, port = exporter_of(served)
        assert (host, port) == (None, 9417)
        assert [s.name for s in exporter.scrapers] == ["info", "container", "image"]
        assert exporter.scrape_timeout == 10.0
        served.configure_logging.assert_called_once_with("info", None)

    def test_flags(self, runner, served):
        result = runner.invoke(
            main,
            [
                "--web.listen-address", "127.0.0.1:9500",
                "--scrape.timeout", "0",
                "--no-collect.image",
                "--docker.host", "tcp://docker:2375",
                "--log-level", "debug",
            ],
        )

        assert result.exit_code == 0, result.output
        exporter, host, port = exporter_of(served)
        assert (host, port) == ("127.0.0.1", 9500)
        assert exporter.scrape_timeout is None
        assert [s.name for s in exporter.scrapers] == ["info", "container"]
        assert exporter.client.base_url == "http://docker:2375"
        served.configure_logging.assert_called_once_with("debug", None)

    def test_flags_override_config_file(self, runner, served, tmp_path):
        config_file = tmp_path / "exporter.toml"
        config_file.write_text(
            '[web]\nlisten_address = ":9000"\n\n[collectors]\nimage = false\n'
        )

        result = runner.invoke(
            main, ["-c", str(config_file), "--collect.image", "--web.listen-address", ":9001"]
        )

        assert result.exit_code == 0, result.output
        exporter, _, port = exporter_of(served)
        assert port == 9001
        assert "image" in [s.name for s in exporter.scrapers]

    def test_invalid_listen_address(self, runner, served):
        result = runner.invoke(main, ["--web.listen-address", "nowhere"])

        assert result.exit_code == 1
        assert "Listen address needs a port" in result.output
        served.serve.assert_not_called()

    @pytest.mark.parametrize("level", ["warning", "critical", "WARN"])
    def test_every_configurable_log_level_accepted(self, runner, served, level):
        result = runner.invoke(main, ["--log-level", level])

        assert result.exit_code == 0, result.output
        served.configure_logging.assert_called_once_with(level.lower(), None)

    def test_negative_timeout_rejected(self, runner, served):
        result = runner.invoke(main, ["--scrape.timeout", "-1"])
        assert result.exit_code == 2

    def test_unsupported_docker_host(self, runner, served):
        result = runner.invoke(main, ["--docker.host", "ssh://box"])

        assert result.exit_code == 1
        assert "Unsupported docker host" in result.output


# =============================================================================
# Helpers
# =============================================================================


class TestApplyOverrides:
    """Tests for apply_overrides()."""

    def test_unset_options_keep_config(self):
        config = ExporterConfig()
        config.web.telemetry_path = "/custom"

        apply_overrides(config, {"telemetry_path": None, "collect_image": None})

        assert config.web.telemetry_path == "/custom"
        assert config.collectors["image"] is True

    def test_collector_toggle(self):
        config = apply_overrides(ExporterConfig(), {"collect_info": False})
        assert config.collectors["info"] is False

    def test_result_is_validated(self):
        with pytest.raises(ConfigError):
            apply_overrides(ExporterConfig(), {"telemetry_path": "metrics"})


def test_build_exporter_passes_settings():
    config = ExporterConfig()
    config.scrape.container_concurrency = 3
    config.docker.host = "tcp://10.0.0.5:2375"
    config.docker.request_timeout = 2.5

    exporter = build_exporter(config)

    [container] = [s for s in exporter.scrapers if s.name == "container"]
    assert container.max_concurrency == 3
    assert exporter.client.timeout == 2.5

"""HTTP surface of the exporter."""

from __future__ import annotations

import asyncio
import html
import logging
import platform

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST

from docker_exporter import __version__
from docker_exporter.exporter import EXPORTER_NAME, Exporter
from docker_exporter.exposition import render

logger = logging.getLogger(__name__)

EXPORTER_KEY = web.AppKey("exporter", Exporter)


def build_info() -> str:
    """Version details shown on the landing page."""
    return (
        f"Name: {EXPORTER_NAME}\n"
        f"Version: {__version__}\n"
        f"PythonVersion: {platform.python_version()}\n"
        f"Implementation: {platform.python_implementation()}\n"
        f"Platform: {platform.system().lower()}/{platform.machine()}\n"
    )


def create_app(exporter: Exporter, telemetry_path: str = "/metrics") -> web.Application:
    """Build the web application.

    Routes:
        /             landing page with a link to the metrics
        telemetry     one scrape cycle, rendered for Prometheus
        /-/ready      readiness probe
    """

    async def handle_index(request: web.Request) -> web.Response:
        body = (
            f"<html>\n"
            f"<head><title>{EXPORTER_NAME}</title></head>\n"
            f"<body>\n"
            f"<h1>{EXPORTER_NAME}</h1>\n"
            f"<p><a href='{html.escape(telemetry_path)}'>metrics</a></p>\n"
            f"<h2>Build</h2>\n"
            f"<pre>{html.escape(build_info())}</pre>\n"
            f"</body>\n"
            f"</html>\n"
        )
        return web.Response(text=body, content_type="text/html")

    async def handle_metrics(request: web.Request) -> web.Response:
        samples = await request.app[EXPORTER_KEY].collect()
        return web.Response(
            body=render(samples),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )

    async def handle_ready(request: web.Request) -> web.Response:
        return web.Response(text="ok")

    async def close_client(app: web.Application) -> None:
        await app[EXPORTER_KEY].client.close()

    app = web.Application()
    app[EXPORTER_KEY] = exporter
    app.router.add_get("/", handle_index)
    app.router.add_get(telemetry_path, handle_metrics)
    app.router.add_get("/-/ready", handle_ready)
    app.on_cleanup.append(close_client)
    return app


async def serve(app: web.Application, host: str | None, port: int) -> None:
    """Serve the application until cancelled."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Listening on address {host or ''}:{port}")

    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()

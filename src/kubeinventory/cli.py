# src/kubeinventory/cli.py
"""Command line entry points: serve the inventory over HTTP or run one scan."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click
import structlog
import uvicorn

from kubeinventory.api.app import create_app
from kubeinventory.api.rendering import render_resources_html
from kubeinventory.config.settings import Settings
from kubeinventory.core.exceptions import KubeInventoryException
from kubeinventory.core.utils import setup_logging
from kubeinventory.discovery.orchestrator import InventoryOrchestrator

logger = structlog.get_logger(__name__)


def _load_settings(debug: bool) -> Settings:
    settings = Settings.create_from_env()
    if debug:
        settings.debug = True
        settings.log_level = "DEBUG"
    setup_logging(
        config_path=settings.log_config_path,
        log_level=str(getattr(settings.log_level, "value", settings.log_level)),
        log_format=settings.log_format,
    )
    return settings


@click.group()
def main():
    """Kubernetes resource inventory."""


@main.command()
@click.option('--host', default=None, help='Listen address (default: API_HOST or 0.0.0.0)')
@click.option('--port', '-p', type=int, default=None, help='Server port (default: API_PORT or 8080)')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def serve(host: Optional[str], port: Optional[int], debug: bool):
    """
    Serve the inventory over HTTP.

    \b
    Endpoints:
        GET /resources   one aggregation pass as JSON (?format=html for a table)
        GET /            the same pass rendered as HTML
        GET /pods        typed pod listing
        GET /health      cluster connectivity
    """
    settings = _load_settings(debug)
    host = host or settings.api.host
    port = port or settings.api.port

    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        access_log=settings.api.access_log,
        log_config=None,
    )


@main.command()
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None, help='Output file (default: stdout)')
@click.option('--format', 'output_format', type=click.Choice(['json', 'html']), default='json', help='Report format')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def scan(output: Optional[str], output_format: str, debug: bool):
    """
    Run a single aggregation pass and write the report.

    Cluster access uses the default kubeconfig ($KUBECONFIG or ~/.kube/config);
    override with K8S_KUBECONFIG_PATH and K8S_CONTEXT.

    Example:
        kube-inventory scan --format html -o resources.html
    """
    settings = _load_settings(debug)

    async def run_scan():
        async with InventoryOrchestrator(settings) as orchestrator:
            return await orchestrator.run_pass_with_metadata()

    try:
        outcome = asyncio.run(run_scan())
    except KubeInventoryException as e:
        click.echo(f"Scan failed: {e}", err=True)
        sys.exit(1)

    if outcome['status'] != 'success':
        click.echo(f"Scan failed: {outcome['error']}", err=True)
        sys.exit(1)

    result = outcome['data']

    if output_format == 'html':
        report = render_resources_html(result)
    else:
        report = json.dumps(result.to_payload(), indent=2)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report)
        click.echo(f"Report saved to: {output_path}", err=True)
    else:
        click.echo(report)

    click.echo(
        f"{len(result.summaries)} resource kinds, {result.total_objects()} objects, "
        f"{len(result.failures)} unavailable "
        f"({outcome['metadata']['duration_seconds']:.2f}s)",
        err=True,
    )


if __name__ == '__main__':
    main()

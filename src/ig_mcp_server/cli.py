"""Command-line entry point of the Inspektor Gadget MCP server."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from ig_mcp_server import __version__
from ig_mcp_server.app import run
from ig_mcp_server.config import load_app_config, set_settings
from ig_mcp_server.telemetry import FATAL_ERROR, configure_logging, get_logger

# stdout carries the stdio transport
console = Console(stderr=True)
app = typer.Typer(help="MCP server exposing Inspektor Gadget gadgets as tools")
log = get_logger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"ig-mcp-server {__version__}")
        raise typer.Exit()


@app.command()
def main(
    read_only: Optional[bool] = typer.Option(
        None, "--read-only/--no-read-only", help="Hide tools that modify the target system"
    ),
    transport: Optional[str] = typer.Option(
        None, "--transport", help="Transport to use (stdio, sse, streamable-http)"
    ),
    transport_host: Optional[str] = typer.Option(
        None, "--transport-host", help="Host for the sse and streamable-http transports"
    ),
    transport_port: Optional[int] = typer.Option(
        None, "--transport-port", help="Port for the sse and streamable-http transports"
    ),
    environment: Optional[str] = typer.Option(
        None, "--environment", help="Environment of the gadget runtime (kubernetes, linux)"
    ),
    linux_remote_address: Optional[str] = typer.Option(
        None, "--linux-remote-address", help="Gadget daemon address, e.g. tcp://host:8080"
    ),
    gadget_images: Optional[str] = typer.Option(
        None,
        "--gadget-images",
        help="Comma-separated gadget images, e.g. 'trace_dns:latest,trace_open:latest'",
    ),
    gadget_discoverer: Optional[str] = typer.Option(
        None, "--gadget-discoverer", help="Gadget discoverer (artifacthub, builtin, '' for none)"
    ),
    artifacthub_official: Optional[bool] = typer.Option(
        None,
        "--artifacthub-official/--no-artifacthub-official",
        help="Use only official gadgets from Artifact Hub",
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (debug, info, warn, error)"
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="Log format (console, json)"
    ),
    cache_dir: Optional[Path] = typer.Option(
        None, "--cache-dir", help="Directory of the gadget info cache"
    ),
    kubeconfig: Optional[str] = typer.Option(
        None, "--kubeconfig", help="Path to the kubeconfig file to use"
    ),
    kube_context: Optional[str] = typer.Option(
        None, "--context", help="The name of the kubeconfig context to use"
    ),
    kube_user: Optional[str] = typer.Option(
        None, "--user", help="The name of the kubeconfig user to use"
    ),
    kube_token: Optional[str] = typer.Option(
        None, "--token", help="Bearer token to use for authentication"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print version and exit",
    ),
) -> None:
    """Serve Inspektor Gadget gadgets as MCP tools."""
    try:
        config = load_app_config(
            read_only=read_only,
            transport=transport,
            transport_host=transport_host,
            transport_port=transport_port,
            environment=environment,
            linux_remote_address=linux_remote_address,
            gadget_images=gadget_images,
            gadget_discoverer=gadget_discoverer,
            artifacthub_official=artifacthub_official,
            log_level=log_level,
            log_format=log_format,
            cache_dir=cache_dir,
            kubeconfig=kubeconfig,
            kube_context=kube_context,
            kube_user=kube_user,
            kube_token=kube_token,
        )
    except ValidationError as e:
        log.error(FATAL_ERROR, reason="invalid configuration", error=str(e))
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1) from e

    set_settings(config)
    configure_logging(level=config.log_level, log_format=config.log_format)

    raise typer.Exit(asyncio.run(run(config)))


if __name__ == "__main__":
    app()

"""CLI command: skynet-review health — check the gateway is up."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.markup import escape

from skynet_review.client.transport import TransportClient
from skynet_review.config import ReviewConfig
from skynet_review.errors import ReviewError

console = Console()
err_console = Console(stderr=True)


@click.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check if services are healthy."""
    config: ReviewConfig = ctx.obj["config"]
    console.print("[bold cyan]Checking service health...[/bold cyan]")

    try:
        with TransportClient(
            config.gateway_url,
            token=config.api_token,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
        ) as client:
            status = client.health_check()
    except ReviewError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    console.print(
        f"[bold green]✓[/bold green] {escape(status.service)} ({escape(status.status)})"
    )

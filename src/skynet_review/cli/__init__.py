"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from skynet_review import __version__
from skynet_review.config import ReviewConfig
from skynet_review.errors import ConfigError


@click.group()
@click.version_option(version=__version__, prog_name="skynet-review")
@click.option(
    "--gateway-url",
    metavar="URL",
    default=None,
    help="Gateway API URL (default: $SKYNET_GATEWAY_URL or http://localhost:5000).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, gateway_url: str | None, verbose: bool) -> None:
    """Skynet Review — AI-powered code security analysis."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = ReviewConfig.load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if gateway_url:
        config.gateway_url = gateway_url

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


def _register_commands() -> None:
    from skynet_review.cli.analyze import analyze  # noqa: F811
    from skynet_review.cli.health import health  # noqa: F811

    main.add_command(analyze)
    main.add_command(health)


_register_commands()

"""Command line entry point: ``python -m mousevr``."""

from __future__ import annotations

import logging

import click

from mousevr import __version__
from mousevr.io.world import LoggingWorld
from mousevr.session import Session
from mousevr.utils._logger import set_level
from mousevr.utils.config import SessionConfig, create_config_template, validate_config_file


@click.group()
@click.version_option(__version__, prog_name="mousevr")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
def cli(debug: bool) -> None:
    """Closed-loop task controller for virtual-reality behaviour."""
    set_level(logging.DEBUG if debug else logging.INFO)


@cli.command()
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--port", type=int, default=None, help="Override the channel port.")
@click.option("--max-ticks", type=int, default=None, help="Stop after this many control-loop ticks.")
def run(config_path: str, port: int | None, max_ticks: int | None) -> None:
    """Run a session against a logging-only world (no renderer attached)."""
    config = SessionConfig.from_file(config_path)
    if port is not None:
        config = SessionConfig.from_mapping({**config.as_dict(), "socket_port": port})
    session = Session(config, LoggingWorld())
    session.run(max_ticks=max_ticks)
    click.echo(session.record.summary())


@cli.command()
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
def validate(config_path: str) -> None:
    """Check a session configuration file."""
    if not validate_config_file(config_path):
        raise click.ClickException(f"Invalid configuration: {config_path}")
    click.echo(f"{config_path}: ok")


@cli.command()
@click.argument("output_path", type=click.Path(dir_okay=False))
def template(output_path: str) -> None:
    """Write a configuration template with every default."""
    create_config_template(output_path)
    click.echo(f"Wrote {output_path}")


if __name__ == "__main__":
    cli()

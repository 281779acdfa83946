"""yolospots CLI — top-level Click group."""

from __future__ import annotations

import click


@click.group()
@click.version_option(package_name="yolospots")
@click.option("--verbose", "-v", is_flag=True, help="Show progress logs and full tracebacks on errors.")
def cli(verbose: bool) -> None:
    """yolospots — YOLO detections for microscopy time-lapses."""
    from yolospots.cli import utils

    utils.verbose = verbose
    utils.configure_logging(verbose)


def _register_commands() -> None:
    """Register all subcommands — imports deferred to avoid loading heavy deps at startup."""
    from yolospots.cli.config_cmd import config
    from yolospots.cli.detect import detect

    cli.add_command(config)
    cli.add_command(detect)


_register_commands()

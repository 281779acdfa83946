"""yolospots config — create and inspect detector settings files."""

from __future__ import annotations

from pathlib import Path

import click
from rich.table import Table

from yolospots.cli.utils import console, error_handler


@click.group()
def config() -> None:
    """Manage YAML detector settings."""


@config.command("init")
@click.argument("path", type=click.Path())
@click.option("-m", "--model", default="", help="Path to a YOLO model file (.pt).")
@click.option("--gpu/--cpu", "use_gpu", default=False, show_default=True, help="Device to run on.")
@click.option("--overwrite", is_flag=True, help="Overwrite the file if it exists.")
@error_handler
def init_config(path: str, model: str, use_gpu: bool, overwrite: bool) -> None:
    """Write a settings file with default values to PATH."""
    from yolospots.detect import YoloPredictConfig, config_to_yaml

    out_path = Path(path).expanduser()
    if out_path.exists() and not overwrite:
        console.print(
            f"[red]Error:[/red] File already exists: {out_path}\n"
            "Use --overwrite to replace it."
        )
        raise SystemExit(1)

    config_to_yaml(YoloPredictConfig(model_path=model, use_gpu=use_gpu), out_path)
    console.print(f"[green]Wrote settings to[/green] {out_path}")


@config.command("show")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@error_handler
def show_config(path: str) -> None:
    """Validate and display the settings in PATH."""
    from yolospots.detect import config_from_yaml
    from yolospots.detect.serialization import config_to_dict

    try:
        cfg = config_from_yaml(Path(path))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    table = Table(title=str(path))
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for key, value in config_to_dict(cfg).items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)

"""Shared CLI utilities — Rich console, logging, error handling, parsing helpers."""

from __future__ import annotations

import functools
import logging
import traceback
from typing import Any, Callable

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

console = Console()

# Set by the --verbose flag on the top-level CLI group.
verbose: bool = False


def configure_logging(verbose_logging: bool = False) -> None:
    """Route library logging through Rich. INFO with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.INFO if verbose_logging else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def error_handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator wrapping CLI commands with standard error handling.

    Catches DetectionRunError (exit 1) and unexpected exceptions (exit 2).
    With --verbose, unexpected errors include the full traceback.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        from yolospots.core.exceptions import DetectionRunError

        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except (click.ClickException, click.exceptions.Exit):
            raise
        except DetectionRunError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)
        except Exception as e:
            if verbose:
                console.print(f"[red]Internal error:[/red] {e}")
                console.print(traceback.format_exc())
            else:
                console.print(
                    f"[red]Internal error:[/red] {type(e).__name__}: {e}\n"
                    "[dim]Use --verbose for the full traceback.[/dim]"
                )
            raise SystemExit(2)

    return wrapper


def make_progress() -> Progress:
    """Create a Rich progress bar for CLI operations."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )


def parse_int_list(value: str, expected: int, option: str) -> list[int]:
    """Parse ``"a,b,c"`` into ``expected`` non-negative integers.

    Raises:
        click.BadParameter: On a malformed value.
    """
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != expected:
        raise click.BadParameter(
            f"expected {expected} comma-separated integers, got {value!r}",
            param_hint=option,
        )
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        raise click.BadParameter(f"not an integer list: {value!r}", param_hint=option) from None
    if any(n < 0 for n in numbers):
        raise click.BadParameter(f"values must be >= 0: {value!r}", param_hint=option)
    return numbers


def parse_range(value: str, option: str) -> tuple[int, int]:
    """Parse ``"a-b"`` (or a single ``"a"``) into an inclusive range.

    Raises:
        click.BadParameter: On a malformed or reversed range.
    """
    lo_str, sep, hi_str = value.partition("-")
    try:
        lo = int(lo_str.strip())
        hi = int(hi_str.strip()) if sep else lo
    except ValueError:
        raise click.BadParameter(f"expected a range like 0-10, got {value!r}", param_hint=option) from None
    if lo < 0 or hi < lo:
        raise click.BadParameter(f"invalid range {value!r}", param_hint=option)
    return lo, hi

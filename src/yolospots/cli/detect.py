"""yolospots detect — run YOLO on a TIFF time-lapse and export the detections."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import click
from rich.markup import escape

from yolospots.cli.utils import console, error_handler, make_progress, parse_int_list, parse_range


@click.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-m", "--model", default=None, type=click.Path(),
    help="Path to a YOLO model file (.pt).",
)
@click.option(
    "--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
    help="YAML file with saved detector settings. Command-line options take precedence.",
)
@click.option(
    "--conf", type=click.FloatRange(0.0, 1.0), default=None,
    help="Minimum confidence threshold for detections.  [default: 0.25]",
)
@click.option(
    "--iou", type=click.FloatRange(0.0, 1.0), default=None,
    help="IoU threshold for Non-Maximum Suppression.  [default: 0.7]",
)
@click.option(
    "--gpu/--cpu", "use_gpu", default=None,
    help="Run inference on the GPU (cuda, or mps on macOS) or the CPU.",
)
@click.option(
    "--executable", default=None,
    help="The yolo executable, a name on PATH or a full path.  [default: yolo]",
)
@click.option(
    "--conda-env", default=None,
    help="Run the executable inside this conda environment.",
)
@click.option(
    "--crop", default=None,
    help="Region to process as x0,y0,x1,y1 (inclusive pixel bounds).",
)
@click.option(
    "--frames", default=None,
    help="Time points to process, e.g. 0-10 (inclusive).",
)
@click.option(
    "--pixel-size", type=click.FloatRange(min=0.0, min_open=True), default=None,
    help="Override the XY pixel size read from the file.",
)
@click.option(
    "-o", "--output", default=None, type=click.Path(),
    help="CSV file to write the detections to.",
)
@click.option("--overwrite", is_flag=True, help="Overwrite the output file if it exists.")
@click.option(
    "--keep-workspace", is_flag=True,
    help="Keep the temporary folder with staged frames, log and results.",
)
@error_handler
def detect(
    image: str,
    model: str | None,
    config_path: str | None,
    conf: float | None,
    iou: float | None,
    use_gpu: bool | None,
    executable: str | None,
    conda_env: str | None,
    crop: str | None,
    frames: str | None,
    pixel_size: float | None,
    output: str | None,
    overwrite: bool,
    keep_workspace: bool,
) -> None:
    """Run YOLO detection on every frame of IMAGE."""
    from yolospots.core.context import RunContext
    from yolospots.detect import YoloDetector, YoloPredictConfig, config_from_yaml
    from yolospots.io.tiff import read_image_region

    out_path: Path | None = None
    if output is not None:
        out_path = Path(output).expanduser()
        if out_path.is_dir():
            console.print(
                f"[red]Error:[/red] Output path is a directory: {out_path}\n"
                f"Provide a file path, e.g. {out_path / 'detections.csv'}"
            )
            raise SystemExit(1)
        if not out_path.parent.exists():
            console.print(
                f"[red]Error:[/red] Parent directory does not exist: {out_path.parent}"
            )
            raise SystemExit(1)
        if out_path.exists() and not overwrite:
            console.print(
                f"[red]Error:[/red] Output file already exists: {out_path}\n"
                "Use --overwrite to replace it."
            )
            raise SystemExit(1)

    try:
        config = config_from_yaml(Path(config_path)) if config_path else YoloPredictConfig()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    if model is not None:
        config.model_path = model
    if conf is not None:
        config.conf = conf
    if iou is not None:
        config.iou = iou
    if use_gpu is not None:
        config.use_gpu = use_gpu
    if executable is not None:
        config.executable = executable
    if conda_env is not None:
        config.conda_env = conda_env

    try:
        region = read_image_region(Path(image))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    if pixel_size is not None:
        region = replace(
            region, calibration=(pixel_size, pixel_size, region.calibration[2]),
        )

    interval = region.interval
    assert interval is not None
    if frames is not None and not region.has_time:
        raise click.BadParameter("the image has no time axis", param_hint="--frames")
    try:
        if crop is not None:
            x0, y0, x1, y1 = parse_int_list(crop, 4, "--crop")
            interval = replace(interval, x_min=x0, y_min=y0, x_max=x1, y_max=y1)
        if frames is not None:
            t0, t1 = parse_range(frames, "--frames")
            interval = replace(interval, t_min=t0, t_max=t1)
        region = region.with_interval(interval)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    console.print(
        f"Image [bold]{Path(image).name}[/bold]: axes {region.axes}, "
        f"shape {region.data.shape}, {region.n_frames} frame(s) to process"
    )

    with make_progress() as progress:
        task = progress.add_task("Starting...", total=1.0)
        context = RunContext(
            progress=lambda fraction: progress.update(task, completed=fraction),
            status=lambda message: progress.update(task, description=message),
        )
        detector = YoloDetector(region, config, context, keep_workspace=keep_workspace)
        result = detector.run()

    if not result.success:
        console.print("[red]Detection failed[/red]")
        console.print(escape(result.error_message or "Unknown error"))
        raise SystemExit(1)

    detections = result.detections
    console.print()
    console.print("[green]Detection complete[/green]")
    console.print(f"  Frames with results: {len(detections)}")
    console.print(f"  Total detections: {detections.n_detections}")
    console.print(f"  Elapsed: {result.elapsed_seconds:.1f}s")
    if keep_workspace and detector.workspace_path is not None:
        console.print(f"  Workspace: {detector.workspace_path}")

    if result.warnings:
        console.print()
        console.print(f"[yellow]Warnings ({len(result.warnings)}):[/yellow]")
        for w in result.warnings:
            console.print(f"  [dim]- {escape(w)}[/dim]")

    if out_path is not None:
        detections.to_dataframe().to_csv(out_path, index=False)
        console.print(f"Wrote {detections.n_detections} detection(s) to {out_path}")

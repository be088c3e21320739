"""Save/restore CLI commands for the device calibration state."""

from pathlib import Path
from typing import Optional

import typer

from digitizer_calibration.calibrator import Calibrator
from digitizer_calibration.cli.main import get_config, open_device_dir, state_app
from digitizer_calibration.outcome import FailureKind
from digitizer_calibration.sinks import XInputPropertySink
from digitizer_calibration.types import Pixels
from digitizer_calibration.zone import ScreenGeometry

DEVICE_DIR_OPTION = typer.Option(
    None,
    "--device-dir",
    envvar="DIGCAL_DEVICE_DIR",
    help="Driver directory holding one file per calibration field [default: from config]",
)
DEVICE_OPTION = typer.Option(
    None,
    "--device",
    envvar="DIGCAL_DEVICE",
    help="XInput device name or id; compositor properties are skipped without it",
)
WIDTH_OPTION = typer.Option(1920, help="Screen width in pixels")
HEIGHT_OPTION = typer.Option(1080, help="Screen height in pixels")


def _make_calibrator(
    ctx: typer.Context,
    device_dir: Optional[Path],
    device: Optional[str],
    width: int,
    height: int,
) -> Calibrator:
    config = get_config(ctx)
    device_dir = device_dir or config.device_dir
    if device_dir is None:
        typer.echo(
            "Error: no driver directory, pass --device-dir or set device_dir in --config",
            err=True,
        )
        raise typer.Exit(1)
    device = device or config.device

    sink = open_device_dir(device_dir)
    compositor = XInputPropertySink(device) if device else None
    try:
        screen = ScreenGeometry(Pixels(width), Pixels(height))
        return Calibrator(screen, config=config, device=sink, compositor=compositor)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@state_app.command("save")
def save_command(
    ctx: typer.Context,
    output: Path = typer.Argument(..., help="State file to write"),
    device_dir: Optional[Path] = DEVICE_DIR_OPTION,
    width: int = WIDTH_OPTION,
    height: int = HEIGHT_OPTION,
) -> None:
    """
    Save the calibration currently held by the device to a file.

    Example:
        digcal state save ebeam.state --device-dir /sys/class/input/event5/device/device/
    """
    calibrator = _make_calibrator(ctx, device_dir, None, width, height)
    outcome = calibrator.save_state(output)
    if not outcome.ok:
        typer.echo(f"Error: {outcome.message}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Calibration data saved to {output}")


@state_app.command("restore")
def restore_command(
    ctx: typer.Context,
    input_file: Path = typer.Argument(..., help="State file to read"),
    device_dir: Optional[Path] = DEVICE_DIR_OPTION,
    device: Optional[str] = DEVICE_OPTION,
    width: int = WIDTH_OPTION,
    height: int = HEIGHT_OPTION,
) -> None:
    """
    Restore a saved calibration to the device and the compositor.

    A version mismatch between the file and this tool is reported but the
    restore proceeds anyway.

    Example:
        digcal state restore ebeam.state --device-dir /sys/class/input/event5/device/device/
    """
    calibrator = _make_calibrator(ctx, device_dir, device, width, height)
    outcome = calibrator.restore_state(input_file)
    if not outcome.ok:
        typer.echo(f"Error: {outcome.message}", err=True)
        if outcome.failure is FailureKind.EXPORT_INCOMPLETE:
            typer.echo("The device may be left uncalibrated, please retry.", err=True)
        raise typer.Exit(1)

    if FailureKind.SNAPSHOT_VERSION_MISMATCH in outcome.warnings:
        typer.echo(f"Warning: version mismatch, state file is {outcome.unwrap().version}", err=True)
    typer.echo(f"Calibration data restored from {input_file}")


@state_app.command("reset")
def reset_command(
    ctx: typer.Context,
    device_dir: Optional[Path] = DEVICE_DIR_OPTION,
    device: Optional[str] = DEVICE_OPTION,
) -> None:
    """
    Mark the device uncalibrated and reset compositor properties.

    Example:
        digcal state reset --device-dir /sys/class/input/event5/device/device/ --device 12
    """
    calibrator = _make_calibrator(ctx, device_dir, device, 1920, 1080)
    report = calibrator.reset_calibration()
    if not report.ok:
        for failure in report.failures:
            typer.echo(f"Error: {failure}", err=True)
        raise typer.Exit(1)
    typer.echo("Calibration reset")

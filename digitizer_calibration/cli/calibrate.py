"""Calibration CLI commands."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence

import typer
import yaml

from digitizer_calibration.calibrator import compute_matrix
from digitizer_calibration.cli.main import calibrate_app, get_config, open_device_dir
from digitizer_calibration.correspondence import NUM_POINTS, Correspondence
from digitizer_calibration.sinks import XInputPropertySink
from digitizer_calibration.targets import compute_targets
from digitizer_calibration.transform_exporter import (
    compute_zone_transform,
    export_calibration,
)
from digitizer_calibration.types import DeviceUnits, Pixels
from digitizer_calibration.zone import ScreenGeometry, Zone


class OutputFormat(str, Enum):
    """Output format options."""

    HUMAN = "human"
    JSON = "json"
    YAML = "yaml"


def load_points_yaml(path: Path) -> list[Correspondence]:
    """
    Load correspondences from a YAML file.

    Expected structure (targets in order upper-left, lower-left, upper-right,
    lower-right):

        points:
          - device: [1210, 1530]
            screen: [240, 135]
          - ...

    Raises:
        ValueError: If the file is malformed.
    """
    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or "points" not in data:
        raise ValueError(f"{path}: expected a 'points' list")

    points = []
    for index, entry in enumerate(data["points"], start=1):
        try:
            X, Y = entry["device"]
            x, y = entry["screen"]
        except (KeyError, TypeError, ValueError):
            raise ValueError(
                f"{path}: point {index} needs 'device: [X, Y]' and 'screen: [x, y]'"
            ) from None
        points.append(Correspondence(DeviceUnits(X), DeviceUnits(Y), Pixels(x), Pixels(y)))

    if len(points) != NUM_POINTS:
        raise ValueError(f"{path}: expected {NUM_POINTS} points, got {len(points)}")
    return points


def _emit(data: dict[str, Any], output_format: OutputFormat, human: str) -> None:
    if output_format == OutputFormat.JSON:
        typer.echo(json.dumps(data, indent=2))
    elif output_format == OutputFormat.YAML:
        typer.echo(yaml.safe_dump(data, sort_keys=False))
    else:
        typer.echo(human)


def _resolve_zone(
    zone: Optional[Sequence[int]], width: int, height: int
) -> tuple[ScreenGeometry, Zone]:
    try:
        screen = ScreenGeometry(Pixels(width), Pixels(height))
        return screen, Zone.resolve(zone, screen)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@calibrate_app.command("compute")
def compute_command(
    ctx: typer.Context,
    points_file: Path = typer.Argument(..., help="YAML file with the 4 correspondences"),
    precision: Optional[int] = typer.Option(
        None, help="Number of decimal digits kept [default: from config, 12]"
    ),
    zone: Optional[list[int]] = typer.Option(
        None, help="Active zone, repeat 4 times: min_x min_y max_x max_y"
    ),
    width: int = typer.Option(1920, help="Screen width in pixels"),
    height: int = typer.Option(1080, help="Screen height in pixels"),
    device_dir: Optional[Path] = typer.Option(
        None, help="Write the verified matrix to this driver directory"
    ),
    device: Optional[str] = typer.Option(
        None, help="XInput device name or id receiving the compositor transform"
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.HUMAN,
        "--format",
        "-f",
        help="Output format",
    ),
) -> None:
    """
    Compute and verify the integer homography of 4 recorded correspondences.

    With --device-dir and/or --device (or their config counterparts) the
    verified calibration is exported to the driver and the compositor; both
    exports are attempted even when one fails.

    Exits with code 1 when the points are degenerate, the quantized matrix
    does not reproduce them, or an export fails.

    Example:
        digcal calibrate compute points.yaml --precision 12 --format json
    """
    config = get_config(ctx)
    try:
        correspondences = load_points_yaml(points_file)
    except (OSError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if precision is None:
        precision = config.precision
    outcome = compute_matrix(correspondences, precision)
    if not outcome.ok:
        typer.echo(f"Error: {outcome.failure.value}: {outcome.message}", err=True)
        raise typer.Exit(1)
    matrix = outcome.unwrap()

    data = {
        "precision": matrix.precision,
        "h": list(matrix.coefficients),
    }
    _emit(data, output_format, f"H matrix (precision {matrix.precision}):\n{matrix.describe()}")

    device_dir = device_dir or config.device_dir
    device = device or config.device
    if device_dir is None and not device:
        return

    screen, active_zone = _resolve_zone(zone or config.zone, width, height)
    report = export_calibration(
        matrix,
        active_zone,
        screen,
        device=open_device_dir(device_dir) if device_dir is not None else None,
        compositor=XInputPropertySink(device) if device else None,
    )
    if not report.ok:
        for failure in report.failures:
            typer.echo(f"Error: {failure}", err=True)
        raise typer.Exit(1)
    written = [str(device_dir)] if device_dir is not None else []
    written += [f"xinput device {device}"] if device else []
    typer.echo(f"Calibration written to {', '.join(written)}", err=True)


@calibrate_app.command("zone-transform")
def zone_transform_command(
    ctx: typer.Context,
    zone: Optional[list[int]] = typer.Option(
        None, help="Active zone, repeat 4 times: min_x min_y max_x max_y"
    ),
    width: int = typer.Option(1920, help="Screen width in pixels"),
    height: int = typer.Option(1080, help="Screen height in pixels"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.HUMAN,
        "--format",
        "-f",
        help="Output format",
    ),
) -> None:
    """
    Print the compositor transformation matrix and the targets of a zone.

    Example:
        digcal calibrate zone-transform --zone 100 --zone 50 --zone 1819 --zone 1029
    """
    screen, active_zone = _resolve_zone(zone or get_config(ctx).zone, width, height)
    matrix = compute_zone_transform(active_zone, screen)
    targets = compute_targets(active_zone)

    data = {
        "restricted": active_zone.is_restricted,
        "axis_calibration": list(active_zone.axis_bounds()),
        "matrix": [[float(v) for v in row] for row in matrix],
        "targets": {corner.name.lower(): list(xy) for corner, xy in targets.items()},
    }
    rows = "\n".join(f"[{a:19f} ; {b:19f} ; {c:19f}]" for a, b, c in matrix)
    human = (
        f"Coordinate transformation matrix:\n{rows}\n"
        + "\n".join(f"{corner.name.lower()}: {xy[0]} {xy[1]}" for corner, xy in targets.items())
    )
    _emit(data, output_format, human)

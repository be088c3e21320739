"""Main Typer CLI application for digitizer calibration tools."""

import logging
from pathlib import Path
from typing import Optional

import typer

from digitizer_calibration.config import CalibratorConfig, get_default_config
from digitizer_calibration.sinks import SysfsDeviceState

app = typer.Typer(
    help="Digitizer calibration tools: compute, save and restore calibrations",
    no_args_is_help=True,
)

calibrate_app = typer.Typer(help="Calibration computation commands")
state_app = typer.Typer(help="Save, restore and reset the device calibration")

app.add_typer(calibrate_app, name="calibrate")
app.add_typer(state_app, name="state")


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print debug messages during the process"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="DIGCAL_CONFIG",
        help="YAML file with a 'calibration' section; command options override it",
    ),
) -> None:
    """Configure logging and load the run configuration for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s: %(message)s',
    )

    if config_file is None:
        ctx.obj = get_default_config()
        return
    try:
        ctx.obj = CalibratorConfig.from_yaml(config_file)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def get_config(ctx: typer.Context) -> CalibratorConfig:
    """Configuration loaded by the app callback."""
    return ctx.obj if isinstance(ctx.obj, CalibratorConfig) else get_default_config()


def open_device_dir(device_dir: Path) -> SysfsDeviceState:
    """Driver directory as a sink, refusing one that lacks calibration fields."""
    device = SysfsDeviceState(device_dir)
    missing = device.missing_fields()
    if missing:
        typer.echo(f"Error: {device_dir} does not expose {', '.join(missing)}", err=True)
        raise typer.Exit(1)
    return device


def _register_commands() -> None:
    """
    Import command modules to register commands with their respective apps.

    Commands use decorators like @state_app.command() which register
    themselves when the module is imported.
    """
    from digitizer_calibration.cli import calibrate, state

    _ = calibrate
    _ = state


_register_commands()


if __name__ == "__main__":
    app()

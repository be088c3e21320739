"""CLI module for digitizer calibration.

Provides the `digcal` command-line interface.
"""

from digitizer_calibration.cli.main import app

__all__ = ["app"]

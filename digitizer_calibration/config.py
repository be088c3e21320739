"""
Configuration for a calibration run.

Values come from a YAML file with a top-level `calibration` section, e.g.:

    calibration:
      precision: 12
      threshold_doubleclick: 16
      zone: [100, 50, 1819, 1029]   # min_x min_y max_x max_y, omit for full screen
      device_dir: /sys/class/input/event5/device/device/
      device: "eBeam Classic"
      timeout_ms: 15000
      tick_ms: 100

The device location defaults to the DIGCAL_DEVICE_DIR and DIGCAL_DEVICE
environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from digitizer_calibration.fixed_point import DEFAULT_PRECISION, MAX_PRECISION, MIN_PRECISION
from digitizer_calibration.point_collector import DEFAULT_DOUBLECLICK_THRESHOLD

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 15000
DEFAULT_TICK_MS = 100

_KNOWN_KEYS = {
    "precision",
    "threshold_doubleclick",
    "zone",
    "device_dir",
    "device",
    "timeout_ms",
    "tick_ms",
}


@dataclass(frozen=True)
class CalibratorConfig:
    """Settings of a calibration run.

    Attributes:
        precision: Decimal digits kept in the integer matrix.
        threshold_doubleclick: Double-click rejection distance, 0 disables it.
        zone: Requested (min_x, min_y, max_x, max_y), None for full screen.
        device_dir: Directory of the driver's per-field files.
        device: XInput name or id of the device.
        timeout_ms: Collection aborts after this long without a click.
        tick_ms: Period of the collection loop tick.
    """

    precision: int = DEFAULT_PRECISION
    threshold_doubleclick: int = DEFAULT_DOUBLECLICK_THRESHOLD
    zone: tuple[int, int, int, int] | None = None
    device_dir: Path | None = None
    device: str | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    tick_ms: int = DEFAULT_TICK_MS

    def __post_init__(self) -> None:
        if not MIN_PRECISION <= self.precision <= MAX_PRECISION:
            raise ValueError(
                f"precision must be in [{MIN_PRECISION}, {MAX_PRECISION}], got {self.precision}"
            )
        if self.threshold_doubleclick < 0:
            raise ValueError(
                f"threshold_doubleclick must be >= 0, got {self.threshold_doubleclick}"
            )
        if self.zone is not None and len(self.zone) != 4:
            raise ValueError(f"zone must hold 4 values, got {len(self.zone)}")
        if self.tick_ms <= 0:
            raise ValueError(f"tick_ms must be positive, got {self.tick_ms}")
        if self.timeout_ms < self.tick_ms:
            raise ValueError(f"timeout_ms ({self.timeout_ms}) must be >= tick_ms ({self.tick_ms})")

    @classmethod
    def from_yaml(cls, path: str | Path) -> CalibratorConfig:
        """Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is malformed or holds invalid values.
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {path}\n"
                f"Please create a configuration file or use get_default_config()"
            )

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse YAML configuration file: {e}") from e

        if not data or "calibration" not in data:
            raise ValueError(
                f"Configuration file missing 'calibration' section: {path}\n"
                f"Expected structure: calibration:\n  precision: ...\n  ..."
            )
        return cls.from_dict(data["calibration"])

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> CalibratorConfig:
        """Create configuration from a dictionary, environment filling the gaps.

        Raises:
            ValueError: If the configuration is invalid.
        """
        if not isinstance(config, dict):
            raise ValueError(f"Configuration must be a dictionary, got {type(config)}")

        unknown = set(config) - _KNOWN_KEYS
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(sorted(unknown))}")

        zone = config.get("zone")
        if zone is not None:
            if not isinstance(zone, (list, tuple)):
                raise ValueError(f"'zone' must be a list of 4 integers, got {type(zone)}")
            zone = tuple(int(v) for v in zone)

        device_dir = config.get("device_dir", os.getenv("DIGCAL_DEVICE_DIR"))
        device = config.get("device", os.getenv("DIGCAL_DEVICE"))

        return cls(
            precision=int(config.get("precision", DEFAULT_PRECISION)),
            threshold_doubleclick=int(
                config.get("threshold_doubleclick", DEFAULT_DOUBLECLICK_THRESHOLD)
            ),
            zone=zone,
            device_dir=Path(device_dir) if device_dir else None,
            device=str(device) if device is not None else None,
            timeout_ms=int(config.get("timeout_ms", DEFAULT_TIMEOUT_MS)),
            tick_ms=int(config.get("tick_ms", DEFAULT_TICK_MS)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "precision": self.precision,
            "threshold_doubleclick": self.threshold_doubleclick,
            "zone": list(self.zone) if self.zone is not None else None,
            "device_dir": str(self.device_dir) if self.device_dir is not None else None,
            "device": self.device,
            "timeout_ms": self.timeout_ms,
            "tick_ms": self.tick_ms,
        }


def get_default_config() -> CalibratorConfig:
    """Default configuration, device location taken from the environment."""
    return CalibratorConfig.from_dict({})

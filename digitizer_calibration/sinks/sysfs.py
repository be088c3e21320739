"""
File-per-field device state, as exposed by the eBeam kernel driver in sysfs.

Each calibration parameter lives in its own file under the device directory,
e.g. /sys/class/input/event5/device/device/h1, holding a decimal integer.
"""

from __future__ import annotations

import logging
from pathlib import Path

from digitizer_calibration.sinks.base import CALIBRATED_FLAG, CALIBRATION_FIELDS

logger = logging.getLogger(__name__)

KNOWN_FIELDS = (*CALIBRATION_FIELDS, CALIBRATED_FLAG)


class SysfsDeviceState:
    """Named integer fields stored one per file under a directory.

    Attributes:
        device_dir: Directory holding one file per field.
    """

    def __init__(self, device_dir: str | Path):
        self.device_dir = Path(device_dir)

    def _path(self, name: str) -> Path:
        if name not in KNOWN_FIELDS:
            raise ValueError(f"Unknown calibration field: {name}")
        return self.device_dir / name

    def write_field(self, name: str, value: int) -> None:
        path = self._path(name)
        logger.debug(f"Writing {value} to {path}")
        # the attribute must already exist, sysfs never creates files
        if not path.exists():
            raise FileNotFoundError(f"{path} is not exposed by the driver")
        with open(path, "w") as f:
            f.write(str(int(value)))

    def read_field(self, name: str) -> int:
        path = self._path(name)
        text = path.read_text().strip()
        try:
            value = int(text)
        except ValueError:
            raise ValueError(f"Unable to parse {path}: {text!r}") from None
        logger.debug(f"Read {value} from {path}")
        return value

    def missing_fields(self) -> list[str]:
        """Fields the driver does not expose; empty for a usable device."""
        return [name for name in KNOWN_FIELDS if not (self.device_dir / name).exists()]

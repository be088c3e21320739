"""
Line-oriented state file for saving and restoring a calibration.

The format holds one value per line:

    line 1:      version string of the tool that wrote it
    lines 2-5:   min_x, max_x, min_y, max_y
    lines 6-14:  h[0] .. h[8]

Note the bounds order (min_x, max_x, min_y, max_y), which differs from the
order of the Zone fields. Whether the zone is restricted is not stored: it is
re-derived from the screen geometry at load time.

Usage Example:
    >>> snapshot = CalibrationSnapshot(version="0.9", zone=zone, matrix=matrix)
    >>> save_snapshot("ebeam.state", snapshot)
    >>> outcome = load_snapshot("ebeam.state", ScreenGeometry(1920, 1080))
    >>> if outcome.ok:
    ...     restored = outcome.value
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from digitizer_calibration import __version__
from digitizer_calibration.fixed_point import HomographyMatrix
from digitizer_calibration.outcome import FailureKind, Outcome
from digitizer_calibration.zone import ScreenGeometry, Zone

logger = logging.getLogger(__name__)

NUM_LINES = 14


@dataclass(frozen=True)
class CalibrationSnapshot:
    """Zone and integer matrix of a calibration, as persisted.

    Attributes:
        version: Version of the tool that produced the snapshot.
        zone: Active zone.
        matrix: Verified integer homography.
    """

    version: str
    zone: Zone
    matrix: HomographyMatrix

    def __post_init__(self) -> None:
        if not self.version or any(c.isspace() for c in self.version):
            raise ValueError(f"version must be a non-empty word, got {self.version!r}")


def serialize(snapshot: CalibrationSnapshot) -> str:
    """Render a snapshot in the state file format."""
    zone = snapshot.zone
    lines = [snapshot.version, *(str(v) for v in zone.axis_bounds())]
    lines.extend(str(h) for h in snapshot.matrix.coefficients)
    return "\n".join(lines) + "\n"


def deserialize(
    text: str, screen: ScreenGeometry, running_version: str = __version__
) -> Outcome[CalibrationSnapshot]:
    """Parse a state file.

    Args:
        text: Content of the state file.
        screen: Current screen geometry, used to re-derive is_restricted.
        running_version: Version of the running tool.

    Returns:
        Outcome carrying the snapshot, or SNAPSHOT_PARSE_ERROR. A version
        mismatch is reported in Outcome.warnings and parsing continues.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) < NUM_LINES:
        return Outcome.fail(
            FailureKind.SNAPSHOT_PARSE_ERROR,
            f"expected {NUM_LINES} lines, got {len(lines)}",
        )
    if len(lines) > NUM_LINES:
        logger.warning(f"Ignoring {len(lines) - NUM_LINES} trailing lines in state file")

    version = lines[0]
    warnings: tuple[FailureKind, ...] = ()
    if version != running_version:
        logger.warning(
            f"Version mismatch: state file is {version}, application is {running_version}. "
            f"Proceeding anyway."
        )
        warnings = (FailureKind.SNAPSHOT_VERSION_MISMATCH,)

    values: list[int] = []
    for number, line in enumerate(lines[1:NUM_LINES], start=2):
        try:
            values.append(int(line))
        except ValueError:
            section = "min/max" if number <= 5 else "H coefs"
            return Outcome.fail(
                FailureKind.SNAPSHOT_PARSE_ERROR,
                f"bad state file ({section}) at line {number}: {line!r}",
            )

    min_x, max_x, min_y, max_y = values[:4]
    try:
        zone = Zone.from_bounds(min_x, min_y, max_x, max_y, screen)
        matrix = HomographyMatrix.from_coefficients(values[4:])
        snapshot = CalibrationSnapshot(version=version, zone=zone, matrix=matrix)
    except ValueError as e:
        return Outcome.fail(FailureKind.SNAPSHOT_PARSE_ERROR, f"bad state file: {e}")

    if zone.is_restricted:
        logger.debug(f"Active zone: {zone.min_x} {zone.min_y} {zone.max_x} {zone.max_y}")
    else:
        logger.debug("Active zone: full screen")
    return Outcome.success(snapshot, warnings=warnings)


def save_snapshot(path: str | Path, snapshot: CalibrationSnapshot) -> Outcome[Path]:
    """Write a snapshot to path, replacing the file."""
    path = Path(path)
    try:
        path.write_text(serialize(snapshot))
    except OSError as e:
        logger.error(f"Unable to open {path} for writing: {e}")
        return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, f"unable to write {path}: {e}")
    logger.info(f"Calibration data saved to {path}")
    return Outcome.success(path)


def load_snapshot(
    path: str | Path, screen: ScreenGeometry, running_version: str = __version__
) -> Outcome[CalibrationSnapshot]:
    """Read and parse a snapshot from path."""
    path = Path(path)
    try:
        text = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Unable to open {path} for reading: {e}")
        return Outcome.fail(FailureKind.SNAPSHOT_PARSE_ERROR, f"unable to read {path}: {e}")

    outcome = deserialize(text, screen, running_version)
    if not outcome.ok:
        logger.error(f"Bad state file {path}: {outcome.message}")
    return outcome

"""Screen positions of the four calibration targets inside a zone."""

from digitizer_calibration.correspondence import TargetCorner
from digitizer_calibration.types import Pixels
from digitizer_calibration.zone import Zone

# Targets sit one block inside the zone edges, the zone being split in
# NUM_BLOCKS x NUM_BLOCKS blocks.
NUM_BLOCKS = 8


def compute_targets(zone: Zone, num_blocks: int = NUM_BLOCKS) -> dict[TargetCorner, tuple[Pixels, Pixels]]:
    """Target centers, keyed and ordered by TargetCorner."""
    if num_blocks < 2:
        raise ValueError(f"num_blocks must be >= 2, got {num_blocks}")
    delta_x = zone.width // num_blocks
    delta_y = zone.height // num_blocks

    left, right = zone.min_x + delta_x, zone.max_x - delta_x
    top, bottom = zone.min_y + delta_y, zone.max_y - delta_y

    return {
        TargetCorner.UPPER_LEFT: (Pixels(left), Pixels(top)),
        TargetCorner.LOWER_LEFT: (Pixels(left), Pixels(bottom)),
        TargetCorner.UPPER_RIGHT: (Pixels(right), Pixels(top)),
        TargetCorner.LOWER_RIGHT: (Pixels(right), Pixels(bottom)),
    }

"""
Unit type annotations for the two coordinate spaces of a calibration.

A digitizer reports raw positions in its own device units while targets are
drawn in screen pixels. Mixing the two is the most common calibration bug, so
signatures in this package use these NewType aliases to keep them apart.
They cost nothing at runtime (NewType is erased).

Usage Example:
    >>> from digitizer_calibration.types import DeviceUnits, Pixels
    >>>
    >>> def accept(raw_x: DeviceUnits, target_x: Pixels) -> None:
    ...     pass
"""

from typing import NewType

# Raw digitizer coordinates
DeviceUnits = NewType('DeviceUnits', int)
"""Raw coordinate reported by the digitizer (e.g., X, Y of a stylus press)"""

# Screen coordinates
Pixels = NewType('Pixels', int)
"""Screen coordinates or dimensions in pixels (e.g., target x, y, screen width)"""

# Fixed-point representation
ScaledInt = NewType('ScaledInt', int)
"""Integer coefficient scaled by 10**precision for the integer consumer"""

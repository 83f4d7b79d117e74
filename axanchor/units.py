"""Conversion between physical units and the frame's native coordinates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .geometry import FrameView, Limits

logger = logging.getLogger(__name__)

CM_PER_INCH = 2.54
POINTS_PER_INCH = 72.0

# physical units per centimeter
_UNITS_PER_CM: Dict[str, float] = {
    "centimeters": 1.0,
    "millimeters": 10.0,
    "inches": 1.0 / CM_PER_INCH,
    "points": POINTS_PER_INCH / CM_PER_INCH,
}

Viewport = Tuple[Limits, Limits, float, float]


def units_per_cm(units: str) -> float:
    try:
        return _UNITS_PER_CM[units]
    except KeyError:
        raise ValueError(
            f"unsupported physical units {units!r}; expected one of {sorted(_UNITS_PER_CM)}"
        ) from None


@dataclass
class UnitConverter:
    """Per-frame scale factors, recomputed whenever the viewport changes.

    All factors are *native per physical*: multiplying a physical length by
    ``x_native_per_unit`` gives its extent in x data coordinates.  Frame
    sizes in :class:`FrameView` are centimeters; ``units`` selects the
    physical unit margins and thicknesses are expressed in.
    """

    units: str = "centimeters"
    x_native_per_unit: float = 1.0
    y_native_per_unit: float = 1.0
    x_native_per_pixel: float = 1.0
    y_native_per_pixel: float = 1.0
    x_native_per_point: float = 1.0
    y_native_per_point: float = 1.0
    x_reversed: bool = False
    y_reversed: bool = False
    viewport: Optional[Viewport] = None

    def __post_init__(self) -> None:
        units_per_cm(self.units)

    def refresh(self, view: FrameView) -> None:
        x_span = view.xlim[1] - view.xlim[0]
        y_span = view.ylim[1] - view.ylim[0]
        width_units = view.width * units_per_cm(self.units)
        height_units = view.height * units_per_cm(self.units)
        width_in = view.width / CM_PER_INCH
        height_in = view.height / CM_PER_INCH

        self.x_native_per_unit = x_span / width_units
        self.y_native_per_unit = y_span / height_units
        self.x_native_per_pixel = x_span / (width_in * view.dpi)
        self.y_native_per_pixel = y_span / (height_in * view.dpi)
        self.x_native_per_point = x_span / (width_in * POINTS_PER_INCH)
        self.y_native_per_point = y_span / (height_in * POINTS_PER_INCH)
        self.x_reversed = bool(view.x_reversed)
        self.y_reversed = bool(view.y_reversed)
        self.viewport = (tuple(view.xlim), tuple(view.ylim), float(view.width), float(view.height))
        logger.debug(
            "Refreshed unit scaling: x=%.6g y=%.6g native/%s reversed=(%s, %s)",
            self.x_native_per_unit,
            self.y_native_per_unit,
            self.units,
            self.x_reversed,
            self.y_reversed,
        )

    def native_per_unit(self, horizontal: bool) -> float:
        return self.x_native_per_unit if horizontal else self.y_native_per_unit

    def to_native(self, value: float, horizontal: bool) -> float:
        """Convert a physical length to native coordinates along one axis."""

        return value * self.native_per_unit(horizontal)

    def to_physical(self, value: float, horizontal: bool) -> float:
        return value / self.native_per_unit(horizontal)

    def pixels_to_native(self, value: float, horizontal: bool) -> float:
        return value * (self.x_native_per_pixel if horizontal else self.y_native_per_pixel)

    def points_to_native(self, value: float, horizontal: bool) -> float:
        return value * (self.x_native_per_point if horizontal else self.y_native_per_point)

    def native_to_points(self, value: float, horizontal: bool) -> float:
        return value / (self.x_native_per_point if horizontal else self.y_native_per_point)

    def is_reversed(self, horizontal: bool) -> bool:
        return self.x_reversed if horizontal else self.y_reversed

    def direction(self, horizontal: bool) -> float:
        """Return +1 when "right"/"up" is increasing native coordinate, else -1."""

        return -1.0 if self.is_reversed(horizontal) else 1.0


__all__ = ["CM_PER_INCH", "POINTS_PER_INCH", "UnitConverter", "Viewport", "units_per_cm"]

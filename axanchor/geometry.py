"""Plain geometry records exchanged with the rendering collaborator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

Limits = Tuple[float, float]


@dataclass(frozen=True)
class NativeBox:
    """Axis-aligned bounding box in the frame's native (data) coordinates.

    ``xmin <= xmax`` and ``ymin <= ymax`` always hold; which side is "top" or
    "left" on screen depends on the axis direction and is resolved by
    :class:`axanchor.location.LocationEntry`.
    """

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def __post_init__(self) -> None:
        xmin, xmax = sorted((float(self.xmin), float(self.xmax)))
        ymin, ymax = sorted((float(self.ymin), float(self.ymax)))
        object.__setattr__(self, "xmin", xmin)
        object.__setattr__(self, "xmax", xmax)
        object.__setattr__(self, "ymin", ymin)
        object.__setattr__(self, "ymax", ymax)

    @classmethod
    def from_extent(cls, x: float, y: float, width: float, height: float) -> "NativeBox":
        return cls(x, y, x + width, y + height)

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def center(self) -> Tuple[float, float]:
        return (0.5 * (self.xmin + self.xmax), 0.5 * (self.ymin + self.ymax))

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.xmin, self.ymin, self.xmax, self.ymax)


@dataclass(frozen=True)
class FrameView:
    """Displayed range and physical size of the reference frame.

    ``width`` and ``height`` are in physical units (centimeters by default);
    ``dpi`` converts them to device pixels.
    """

    xlim: Limits
    ylim: Limits
    width: float
    height: float
    dpi: float = 96.0
    x_reversed: bool = False
    y_reversed: bool = False

    def __post_init__(self) -> None:
        if self.xlim[1] <= self.xlim[0] or self.ylim[1] <= self.ylim[0]:
            raise ValueError(f"frame limits must be increasing, got xlim={self.xlim} ylim={self.ylim}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"frame size must be positive, got {self.width}x{self.height}")

    @property
    def limits_box(self) -> NativeBox:
        return NativeBox(self.xlim[0], self.ylim[0], self.xlim[1], self.ylim[1])


__all__ = ["Limits", "NativeBox", "FrameView"]

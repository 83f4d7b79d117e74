"""Geometric attributes that anchors read from and write to."""

from __future__ import annotations

from enum import Enum
from typing import Dict


class PositionAttribute(Enum):
    """Edges, centers and sizes of an element's bounding box.

    ``LITERAL`` marks an anchor value given directly in native coordinates;
    its axis is inferred from the attribute it is paired with.
    """

    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"
    HCENTER = "hcenter"
    VCENTER = "vcenter"
    WIDTH = "width"
    HEIGHT = "height"
    MARKER_DIAMETER = "marker_diameter"
    LITERAL = "literal"

    def is_horizontal(self) -> bool:
        return self in _HORIZONTAL

    def is_vertical(self) -> bool:
        # marker diameters are measured along y
        return self in _VERTICAL

    def is_size(self) -> bool:
        return self in _SIZES

    def opposite(self) -> "PositionAttribute":
        return _OPPOSITES.get(self, self)

    def size_attribute(self) -> "PositionAttribute":
        """Return the size attribute sharing this attribute's axis."""

        if self.is_horizontal():
            return PositionAttribute.WIDTH
        if self.is_vertical():
            return PositionAttribute.HEIGHT
        raise ValueError(f"{self.name} has no axis")

    def to_horizontal_align(self) -> str:
        try:
            return _TO_HALIGN[self]
        except KeyError:
            raise ValueError(f"{self.name} is not a horizontal position") from None

    def to_vertical_align(self) -> str:
        try:
            return _TO_VALIGN[self]
        except KeyError:
            raise ValueError(f"{self.name} is not a vertical position") from None

    @classmethod
    def from_horizontal_align(cls, align: str) -> "PositionAttribute":
        try:
            return _FROM_HALIGN[align.strip().lower()]
        except KeyError:
            raise ValueError(f"unknown horizontal alignment {align!r}") from None

    @classmethod
    def from_vertical_align(cls, align: str) -> "PositionAttribute":
        try:
            return _FROM_VALIGN[align.strip().lower()]
        except KeyError:
            raise ValueError(f"unknown vertical alignment {align!r}") from None

    @classmethod
    def coerce(cls, value: "PositionAttribute | str") -> "PositionAttribute":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


_HORIZONTAL = frozenset(
    {
        PositionAttribute.LEFT,
        PositionAttribute.RIGHT,
        PositionAttribute.HCENTER,
        PositionAttribute.WIDTH,
    }
)
_VERTICAL = frozenset(
    {
        PositionAttribute.TOP,
        PositionAttribute.BOTTOM,
        PositionAttribute.VCENTER,
        PositionAttribute.HEIGHT,
        PositionAttribute.MARKER_DIAMETER,
    }
)
_SIZES = frozenset(
    {
        PositionAttribute.WIDTH,
        PositionAttribute.HEIGHT,
        PositionAttribute.MARKER_DIAMETER,
    }
)

_OPPOSITES: Dict[PositionAttribute, PositionAttribute] = {
    PositionAttribute.TOP: PositionAttribute.BOTTOM,
    PositionAttribute.BOTTOM: PositionAttribute.TOP,
    PositionAttribute.LEFT: PositionAttribute.RIGHT,
    PositionAttribute.RIGHT: PositionAttribute.LEFT,
}

_TO_HALIGN: Dict[PositionAttribute, str] = {
    PositionAttribute.LEFT: "left",
    PositionAttribute.HCENTER: "center",
    PositionAttribute.RIGHT: "right",
}
_TO_VALIGN: Dict[PositionAttribute, str] = {
    PositionAttribute.TOP: "top",
    PositionAttribute.VCENTER: "middle",
    PositionAttribute.BOTTOM: "bottom",
}
_FROM_HALIGN: Dict[str, PositionAttribute] = {
    "left": PositionAttribute.LEFT,
    "center": PositionAttribute.HCENTER,
    "right": PositionAttribute.RIGHT,
}
_FROM_VALIGN: Dict[str, PositionAttribute] = {
    "top": PositionAttribute.TOP,
    "cap": PositionAttribute.TOP,
    "middle": PositionAttribute.VCENTER,
    "center": PositionAttribute.VCENTER,
    "bottom": PositionAttribute.BOTTOM,
    "baseline": PositionAttribute.BOTTOM,
}


__all__ = ["PositionAttribute"]

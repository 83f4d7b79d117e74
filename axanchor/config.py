"""Named layout properties read by anchors, and the process-wide defaults."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple, Union

from .units import CM_PER_INCH, POINTS_PER_INCH, units_per_cm

logger = logging.getLogger(__name__)

# [left, bottom, right, top]
Sides = Tuple[float, float, float, float]

_SIDE_INDEX = {"left": 0, "bottom": 1, "right": 2, "top": 3}
_SIDED_FIELDS = ("axis_margin", "axis_padding", "axis_label_offset", "decoration_label_offset")

LINE_HEIGHT_EM = 1.2


class UnknownPropertyError(KeyError):
    """Raised when a named margin refers to a property the config lacks."""


def _sides(value: Union[float, Tuple[float, ...], list]) -> Sides:
    if isinstance(value, (int, float)):
        v = float(value)
        return (v, v, v, v)
    values = tuple(float(v) for v in value)
    if len(values) != 4:
        raise ValueError(f"expected 4 values [left, bottom, right, top], got {len(values)}")
    return values  # type: ignore[return-value]


@dataclass
class LayoutConfig:
    """Margins, thicknesses and font sizes used by anchors and builders.

    Lengths are physical units (``units``); font sizes and line widths are
    typographic points.  Per-side values are ``[left, bottom, right, top]``
    and are also readable as ``axis_padding_left`` etc., which is how named
    margins usually refer to them.
    """

    units: str = "centimeters"

    tick_length: float = 0.05
    tick_line_width: float = 0.5
    tick_font_size: float = 8.0
    tick_label_offset: float = 0.1

    marker_diameter: float = 0.2
    marker_label_offset: float = 0.1
    interval_thickness: float = 0.1

    label_font_size: float = 9.0
    title_font_size: float = 10.0

    scale_bar_thickness: float = 0.15
    scale_bar_font_size: float = 8.0
    x_units: str = ""
    y_units: str = ""
    keep_auto_scale_bars_equal: bool = False

    axis_margin: Sides = (1.5, 1.0, 0.75, 0.75)
    axis_padding: Sides = (0.1, 0.1, 0.1, 0.1)
    axis_label_offset: Sides = (0.55, 0.55, 0.55, 0.55)
    decoration_label_offset: Sides = (0.1, 0.05, 0.1, 0.1)

    debug: bool = False
    extra: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        units_per_cm(self.units)
        for name in _SIDED_FIELDS:
            setattr(self, name, _sides(getattr(self, name)))

    def side(self, name: str, side: str) -> float:
        return getattr(self, name)[_SIDE_INDEX[side]]

    def set_side(self, name: str, side: str, value: float) -> None:
        values = list(getattr(self, name))
        values[_SIDE_INDEX[side]] = float(value)
        setattr(self, name, tuple(values))

    # derived font metrics, in physical units
    def points_to_units(self, points: float) -> float:
        return points / POINTS_PER_INCH * CM_PER_INCH * units_per_cm(self.units)

    @property
    def tick_font_height(self) -> float:
        return self.points_to_units(self.tick_font_size * LINE_HEIGHT_EM)

    @property
    def label_font_height(self) -> float:
        return self.points_to_units(self.label_font_size * LINE_HEIGHT_EM)

    @property
    def title_font_height(self) -> float:
        return self.points_to_units(self.title_font_size * LINE_HEIGHT_EM)

    @property
    def tick_line_thickness(self) -> float:
        return self.points_to_units(self.tick_line_width)

    def has_property(self, key: str) -> bool:
        """True when ``key`` names a numeric property usable as a margin."""

        try:
            self.lookup(key)
        except UnknownPropertyError:
            return False
        return True

    def lookup(self, key: str) -> float:
        """Return the numeric value of named property ``key``."""

        if key in self.extra:
            return float(self.extra[key])
        if key.startswith("_") or not hasattr(self, key):
            raise UnknownPropertyError(key)
        value = getattr(self, key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise UnknownPropertyError(f"{key} is not a numeric property")
        return float(value)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LayoutConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown layout properties: {', '.join(unknown)}")
        return cls(**dict(data))


def _install_side_accessors() -> None:
    for name in _SIDED_FIELDS:
        for side in _SIDE_INDEX:

            def getter(self: LayoutConfig, _name: str = name, _side: str = side) -> float:
                return self.side(_name, _side)

            def setter(self: LayoutConfig, value: float, _name: str = name, _side: str = side) -> None:
                self.set_side(_name, _side, value)

            setattr(LayoutConfig, f"{name}_{side}", property(getter, setter))


_install_side_accessors()

_DEFAULT_CONFIG = LayoutConfig()


def get_default_config() -> LayoutConfig:
    return copy.deepcopy(_DEFAULT_CONFIG)


def set_default_config(config: LayoutConfig) -> None:
    global _DEFAULT_CONFIG
    _DEFAULT_CONFIG = copy.deepcopy(config)


def load_config(path: Union[str, Path]) -> LayoutConfig:
    """Read a JSON object of property overrides on top of the defaults."""

    with Path(path).open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"layout config in {path} must be a JSON object")
    merged = get_default_config().to_dict()
    merged.update(data)
    config = LayoutConfig.from_mapping(merged)
    logger.info("Loaded layout config overrides from %s: %s", path, sorted(data))
    return config


__all__ = [
    "LayoutConfig",
    "Sides",
    "UnknownPropertyError",
    "get_default_config",
    "load_config",
    "set_default_config",
]

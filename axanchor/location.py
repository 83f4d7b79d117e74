"""Cached element geometry with direction-aware reads and writes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, Sequence, Tuple

import numpy as np

from .geometry import NativeBox
from .handles import Element
from .positions import PositionAttribute
from .units import UnitConverter

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .backend import RenderingBackend

logger = logging.getLogger(__name__)

P = PositionAttribute

_EPS = 1e-12


@dataclass
class LocationEntry:
    """Geometry of one element as last read from (or written to) the backend.

    Values are native coordinates.  Edge names are visual: on a reversed
    vertical axis ``top`` is the smaller y value.
    """

    box: NativeBox
    is_dynamic: bool = False

    def value(self, attr: PositionAttribute, converter: UnitConverter) -> float:
        b = self.box
        if attr is P.LEFT:
            return b.xmax if converter.x_reversed else b.xmin
        if attr is P.RIGHT:
            return b.xmin if converter.x_reversed else b.xmax
        if attr is P.TOP:
            return b.ymin if converter.y_reversed else b.ymax
        if attr is P.BOTTOM:
            return b.ymax if converter.y_reversed else b.ymin
        if attr is P.HCENTER:
            return 0.5 * (b.xmin + b.xmax)
        if attr is P.VCENTER:
            return 0.5 * (b.ymin + b.ymax)
        if attr is P.WIDTH:
            return b.width
        if attr in (P.HEIGHT, P.MARKER_DIAMETER):
            return b.height
        raise ValueError(f"cannot read {attr.name} from an element")

    def physical_size(self, converter: UnitConverter) -> Tuple[float, float]:
        return (
            converter.to_physical(self.box.width, True),
            converter.to_physical(self.box.height, False),
        )


def _place_span(
    lo: float, hi: float, attr_kind: str, value: float, sign: float, keep_far: bool
) -> Tuple[float, float]:
    """Return a new ``(lo, hi)`` span along one axis.

    ``sign`` is +1 when the visual "far" edge (top/right) is the larger
    native value.  ``attr_kind`` is one of ``near``, ``far``, ``center``,
    ``size``; size writes hold the far edge when ``keep_far`` else the near
    edge.
    """

    size = hi - lo
    if attr_kind == "far":
        other = value - sign * size
    elif attr_kind == "near":
        other = value + sign * size
    elif attr_kind == "center":
        return value - 0.5 * size, value + 0.5 * size
    else:
        size = max(value, 0.0)
        if (sign > 0) == keep_far:
            return hi - size, hi
        return lo, lo + size
    return (min(value, other), max(value, other))


_VERTICAL_KIND = {P.TOP: "far", P.BOTTOM: "near", P.VCENTER: "center", P.HEIGHT: "size"}
_HORIZONTAL_KIND = {P.RIGHT: "far", P.LEFT: "near", P.HCENTER: "center", P.WIDTH: "size"}


class LocationCache:
    """Element geometry cache shared by all anchors of one engine.

    Dynamic entries (text, markers, the frame) have a physical size that maps
    to different native extents after every zoom, so they are re-read from
    the backend on each update; static entries are trusted until written.
    """

    def __init__(self, backend: "RenderingBackend", converter: UnitConverter) -> None:
        self.backend = backend
        self.converter = converter
        self._entries: Dict[Element, LocationEntry] = {}

    def __contains__(self, element: object) -> bool:
        return element in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def elements(self) -> Tuple[Element, ...]:
        return tuple(self._entries)

    def entry(self, element: Element) -> LocationEntry:
        found = self._entries.get(element)
        if found is None:
            found = self.query(element)
        return found

    def query(self, element: Element) -> LocationEntry:
        box = self.backend.query_native_geometry(element)
        entry = self._entries.get(element)
        if entry is None:
            entry = LocationEntry(box=box, is_dynamic=self.backend.is_dynamic(element))
            self._entries[element] = entry
        else:
            entry.box = box
        return entry

    def sync(self, referenced: Iterable[Element]) -> None:
        """Keep exactly the entries for ``referenced`` elements that still exist."""

        wanted = {element: None for element in referenced if self.backend.exists(element)}
        for element in [element for element in self._entries if element not in wanted]:
            del self._entries[element]
        refreshed = 0
        for element in wanted:
            entry = self._entries.get(element)
            if entry is None or entry.is_dynamic:
                self.query(element)
                refreshed += 1
        logger.debug("Location cache holds %d entries, refreshed %d", len(self._entries), refreshed)

    def get(self, element: Element, attr: PositionAttribute) -> float:
        return self.entry(element).value(attr, self.converter)

    def aggregate(self, elements: Sequence[Element], attr: PositionAttribute) -> float:
        """Bounding-box value of ``attr`` over ``elements``."""

        if len(elements) == 1:
            return self.get(elements[0], attr)
        if not elements:
            raise ValueError("cannot aggregate an empty element set")
        if attr is P.MARKER_DIAMETER:
            return float(max(self.get(element, attr) for element in elements))

        boxes = np.array([self.entry(element).box.as_tuple() for element in elements], dtype=float)
        xmin, ymin = boxes[:, 0].min(), boxes[:, 1].min()
        xmax, ymax = boxes[:, 2].max(), boxes[:, 3].max()
        return LocationEntry(box=NativeBox(xmin, ymin, xmax, ymax)).value(attr, self.converter)

    def write(self, element: Element, attr: PositionAttribute, value: float) -> LocationEntry:
        """Move or resize ``element`` so that ``attr`` reads ``value``."""

        entry = self.entry(element)
        box = entry.box
        conv = self.converter
        if attr in _VERTICAL_KIND:
            # heights hang from the top edge
            ymin, ymax = _place_span(
                box.ymin, box.ymax, _VERTICAL_KIND[attr], value, conv.direction(False), keep_far=True
            )
            new_box = NativeBox(box.xmin, ymin, box.xmax, ymax)
        elif attr in _HORIZONTAL_KIND:
            xmin, xmax = _place_span(
                box.xmin, box.xmax, _HORIZONTAL_KIND[attr], value, conv.direction(True), keep_far=False
            )
            new_box = NativeBox(xmin, box.ymin, xmax, box.ymax)
        elif attr is P.MARKER_DIAMETER:
            diameter = max(value, 0.0)
            width = conv.to_native(conv.to_physical(diameter, False), True)
            cx, cy = box.center
            new_box = NativeBox(cx - width / 2, cy - diameter / 2, cx + width / 2, cy + diameter / 2)
        else:
            raise ValueError(f"cannot write {attr.name} to an element")

        if new_box != box:
            self.backend.write_native_geometry(element, new_box)
        return self.query(element)

    def write_group(self, elements: Sequence[Element], attr: PositionAttribute, value: float) -> None:
        """Apply ``attr = value`` to a group while keeping its internal layout.

        Sizes rescale every member about the group's current center; marker
        diameters are set on every member; positions translate the group
        rigidly.
        """

        if len(elements) == 1:
            self.write(elements[0], attr, value)
            return

        if attr in (P.HEIGHT, P.WIDTH):
            self._scale_group(elements, attr, value)
        elif attr is P.MARKER_DIAMETER:
            for element in elements:
                self.write(element, attr, value)
        else:
            offset = value - self.aggregate(elements, attr)
            if abs(offset) <= _EPS:
                return
            for element in elements:
                self.write(element, attr, self.get(element, attr) + offset)

    def _scale_group(self, elements: Sequence[Element], attr: PositionAttribute, value: float) -> None:
        horizontal = attr is P.WIDTH
        edge = P.LEFT if horizontal else P.TOP
        center_attr = P.HCENTER if horizontal else P.VCENTER
        old_span = self.aggregate(elements, attr)
        center = self.aggregate(elements, center_attr)
        if old_span <= _EPS:
            logger.debug("Group %s span is degenerate; sizing members individually", attr.name)
            for element in elements:
                self.write(element, attr, value)
                self.write(element, center_attr, center)
            return

        factor = value / old_span
        for element in elements:
            edge_value = self.get(element, edge)
            size = self.get(element, attr)
            self.write(element, attr, size * factor)
            self.write(element, edge, center + (edge_value - center) * factor)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["LocationCache", "LocationEntry"]

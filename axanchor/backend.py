"""Rendering collaborator contract and an in-memory scene implementation.

The engine only ever talks to a :class:`RenderingBackend`: it asks whether
elements exist, reads and writes their native bounding boxes and raises the
stacking order of a few of them.  Builders additionally need a
:class:`DrawingBackend` that can create and delete primitives.

:class:`SceneBackend` implements both without any GUI.  Lines and rectangles
are stored in native coordinates; text and markers are anchored at a native
point and have a physical extent (typographic points), so their native box
changes whenever the view is zoomed or resized.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
from matplotlib.ticker import MaxNLocator

from .geometry import FrameView, NativeBox
from .handles import Element
from .units import CM_PER_INCH, POINTS_PER_INCH

logger = logging.getLogger(__name__)

GLYPH_ADVANCE_EM = 0.6
LINE_HEIGHT_EM = 1.2

Color = str


@runtime_checkable
class RenderingBackend(Protocol):
    @property
    def frame(self) -> Element: ...

    def frame_exists(self) -> bool: ...

    def frame_view(self) -> FrameView: ...

    def exists(self, element: Element) -> bool: ...

    def query_native_geometry(self, element: Element) -> NativeBox: ...

    def write_native_geometry(self, element: Element, box: NativeBox) -> None: ...

    def is_dynamic(self, element: Element) -> bool: ...

    def bring_to_front(self, elements: Sequence[Element]) -> None: ...


@runtime_checkable
class DrawingBackend(RenderingBackend, Protocol):
    def create_line(self, xdata: Sequence[float], ydata: Sequence[float], **style) -> Element: ...

    def create_text(self, x: float, y: float, text: str, **style) -> Element: ...

    def create_rect(self, x: float, y: float, width: float, height: float, **style) -> Element: ...

    def create_marker(self, x: float, y: float, **style) -> Element: ...

    def delete(self, elements: Iterable[Element]) -> None: ...

    def ticks(self, horizontal: bool) -> np.ndarray: ...


_ids = itertools.count(1)


@dataclass(eq=False)
class Primitive:
    """Base for scene elements; hashed and compared by identity."""

    name: str = field(default="", init=False)

    def __post_init__(self) -> None:
        self.name = f"{type(self).__name__.lower()}#{next(_ids)}"

    def __repr__(self) -> str:
        return self.name


@dataclass(eq=False, repr=False)
class FrameElement(Primitive):
    pass


@dataclass(eq=False, repr=False)
class LineElement(Primitive):
    xdata: np.ndarray = field(default_factory=lambda: np.zeros(2))
    ydata: np.ndarray = field(default_factory=lambda: np.zeros(2))
    line_width: float = 0.5
    color: Color = "black"

    def __post_init__(self) -> None:
        super().__post_init__()
        self.xdata = np.asarray(self.xdata, dtype=float).ravel()
        self.ydata = np.asarray(self.ydata, dtype=float).ravel()
        if self.xdata.shape != self.ydata.shape or self.xdata.size == 0:
            raise ValueError("line coordinates must be non-empty and of equal length")


@dataclass(eq=False, repr=False)
class RectElement(Primitive):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    color: Color = "black"


@dataclass(eq=False, repr=False)
class TextElement(Primitive):
    x: float = 0.0
    y: float = 0.0
    text: str = ""
    font_size: float = 8.0
    halign: str = "left"
    valign: str = "bottom"
    rotation: float = 0.0
    color: Color = "black"

    def extent_points(self) -> Tuple[float, float]:
        lines = self.text.split("\n") if self.text else [""]
        width = GLYPH_ADVANCE_EM * self.font_size * max(len(line) for line in lines)
        height = LINE_HEIGHT_EM * self.font_size * len(lines)
        return width, height


@dataclass(eq=False, repr=False)
class MarkerElement(Primitive):
    x: float = 0.0
    y: float = 0.0
    size: float = 1.0  # diameter in points
    marker: str = "o"
    color: Color = "black"


_HALIGN_FRACTION = {"left": 0.0, "center": 0.5, "right": 1.0}
_VALIGN_FRACTION = {"bottom": 0.0, "baseline": 0.0, "middle": 0.5, "center": 0.5, "top": 1.0, "cap": 1.0}


class SceneBackend:
    """In-memory frame plus annotation primitives.

    ``view`` holds the displayed limits and the frame's physical size in
    centimeters.  Listeners registered with :meth:`add_view_listener` run
    after every view change; destroy listeners receive the deleted elements.
    """

    def __init__(self, view: FrameView) -> None:
        self._view = view
        self._frame = FrameElement()
        self._frame_alive = True
        self._elements: List[Primitive] = []
        self._view_listeners: List[Callable[["SceneBackend"], None]] = []
        self._destroy_listeners: List[Callable[[Tuple[Element, ...]], None]] = []

    # -- frame ---------------------------------------------------------------
    @property
    def frame(self) -> FrameElement:
        return self._frame

    def frame_exists(self) -> bool:
        return self._frame_alive

    def frame_view(self) -> FrameView:
        return self._view

    def set_view(
        self,
        xlim: Optional[Tuple[float, float]] = None,
        ylim: Optional[Tuple[float, float]] = None,
        *,
        x_reversed: Optional[bool] = None,
        y_reversed: Optional[bool] = None,
    ) -> None:
        view = self._view
        self._view = FrameView(
            xlim=tuple(xlim) if xlim is not None else view.xlim,
            ylim=tuple(ylim) if ylim is not None else view.ylim,
            width=view.width,
            height=view.height,
            dpi=view.dpi,
            x_reversed=view.x_reversed if x_reversed is None else bool(x_reversed),
            y_reversed=view.y_reversed if y_reversed is None else bool(y_reversed),
        )
        logger.debug("View set to xlim=%s ylim=%s", self._view.xlim, self._view.ylim)
        self._notify_view()

    def resize(self, width: float, height: float) -> None:
        view = self._view
        self._view = FrameView(
            view.xlim, view.ylim, width, height, view.dpi, view.x_reversed, view.y_reversed
        )
        logger.debug("Frame resized to %.3gx%.3g cm", width, height)
        self._notify_view()

    def close(self) -> None:
        """Destroy the frame and everything drawn on it."""

        if not self._frame_alive:
            return
        doomed = tuple(self._elements) + (self._frame,)
        self._elements.clear()
        self._frame_alive = False
        logger.info("Frame %s closed", self._frame)
        self._notify_destroyed(doomed)

    def add_view_listener(self, listener: Callable[["SceneBackend"], None]) -> None:
        self._view_listeners.append(listener)

    def add_destroy_listener(self, listener: Callable[[Tuple[Element, ...]], None]) -> None:
        self._destroy_listeners.append(listener)

    def _notify_view(self) -> None:
        for listener in list(self._view_listeners):
            listener(self)

    def _notify_destroyed(self, elements: Tuple[Element, ...]) -> None:
        for listener in list(self._destroy_listeners):
            listener(elements)

    # -- scale ---------------------------------------------------------------
    def _native_per_point(self) -> Tuple[float, float]:
        view = self._view
        x_span = view.xlim[1] - view.xlim[0]
        y_span = view.ylim[1] - view.ylim[0]
        return (
            x_span / (view.width / CM_PER_INCH * POINTS_PER_INCH),
            y_span / (view.height / CM_PER_INCH * POINTS_PER_INCH),
        )

    def _directions(self) -> Tuple[float, float]:
        return (-1.0 if self._view.x_reversed else 1.0, -1.0 if self._view.y_reversed else 1.0)

    # -- elements ------------------------------------------------------------
    def elements(self) -> Tuple[Primitive, ...]:
        """All live primitives, back to front."""

        return tuple(self._elements)

    def exists(self, element: Element) -> bool:
        if element is self._frame:
            return self._frame_alive
        return element in self._elements

    def is_dynamic(self, element: Element) -> bool:
        return isinstance(element, (FrameElement, TextElement, MarkerElement))

    def _require(self, element: Element) -> Primitive:
        if not self.exists(element):
            raise KeyError(f"{element!r} is not part of this scene")
        return element  # type: ignore[return-value]

    def _text_box(self, text: TextElement) -> NativeBox:
        width, height = text.extent_points()
        fx = _HALIGN_FRACTION.get(text.halign, 0.0)
        fy = _VALIGN_FRACTION.get(text.valign, 0.0)
        # corners relative to the anchor point, in visual points
        corners = np.array(
            [
                [-fx * width, -fy * height],
                [(1 - fx) * width, -fy * height],
                [(1 - fx) * width, (1 - fy) * height],
                [-fx * width, (1 - fy) * height],
            ]
        )
        if text.rotation % 360:
            theta = np.deg2rad(text.rotation)
            rot = np.array([[np.cos(theta), -np.sin(theta)], [np.sin(theta), np.cos(theta)]])
            corners = corners @ rot.T
        x_scale, y_scale = self._native_per_point()
        x_dir, y_dir = self._directions()
        xs = text.x + x_dir * x_scale * corners[:, 0]
        ys = text.y + y_dir * y_scale * corners[:, 1]
        return NativeBox(xs.min(), ys.min(), xs.max(), ys.max())

    def _marker_box(self, marker: MarkerElement) -> NativeBox:
        x_scale, y_scale = self._native_per_point()
        half_w = 0.5 * marker.size * x_scale
        half_h = 0.5 * marker.size * y_scale
        return NativeBox(marker.x - half_w, marker.y - half_h, marker.x + half_w, marker.y + half_h)

    def query_native_geometry(self, element: Element) -> NativeBox:
        item = self._require(element)
        if isinstance(item, FrameElement):
            return self._view.limits_box
        if isinstance(item, LineElement):
            return NativeBox(item.xdata.min(), item.ydata.min(), item.xdata.max(), item.ydata.max())
        if isinstance(item, RectElement):
            return NativeBox.from_extent(item.x, item.y, item.width, item.height)
        if isinstance(item, TextElement):
            return self._text_box(item)
        if isinstance(item, MarkerElement):
            return self._marker_box(item)
        raise TypeError(f"unsupported element {element!r}")

    def write_native_geometry(self, element: Element, box: NativeBox) -> None:
        """Move or resize ``element`` so its bounding box becomes ``box``.

        Text keeps its intrinsic size and is translated so its box center
        lands on the requested center.
        """

        item = self._require(element)
        if isinstance(item, FrameElement):
            raise ValueError("the frame cannot be repositioned by annotations")
        if isinstance(item, LineElement):
            item.xdata = _remap(item.xdata, box.xmin, box.xmax)
            item.ydata = _remap(item.ydata, box.ymin, box.ymax)
        elif isinstance(item, RectElement):
            item.x, item.y, item.width, item.height = box.xmin, box.ymin, box.width, box.height
        elif isinstance(item, TextElement):
            current = self._text_box(item)
            item.x += box.center[0] - current.center[0]
            item.y += box.center[1] - current.center[1]
        elif isinstance(item, MarkerElement):
            _, y_scale = self._native_per_point()
            item.x, item.y = box.center
            item.size = box.height / y_scale
        else:
            raise TypeError(f"unsupported element {element!r}")

    def bring_to_front(self, elements: Sequence[Element]) -> None:
        wanted = set(elements)
        raised = [item for item in self._elements if item in wanted]
        if not raised:
            return
        self._elements = [item for item in self._elements if item not in raised] + raised

    # -- drawing -------------------------------------------------------------
    def _add(self, item: Primitive) -> Primitive:
        if not self._frame_alive:
            raise RuntimeError("cannot draw on a closed frame")
        self._elements.append(item)
        return item

    def create_line(self, xdata: Sequence[float], ydata: Sequence[float], **style) -> LineElement:
        return self._add(LineElement(xdata=xdata, ydata=ydata, **style))  # type: ignore[return-value]

    def create_text(self, x: float, y: float, text: str, **style) -> TextElement:
        return self._add(TextElement(x=float(x), y=float(y), text=str(text), **style))  # type: ignore[return-value]

    def create_rect(self, x: float, y: float, width: float, height: float, **style) -> RectElement:
        return self._add(  # type: ignore[return-value]
            RectElement(x=float(x), y=float(y), width=float(width), height=float(height), **style)
        )

    def create_marker(self, x: float, y: float, **style) -> MarkerElement:
        return self._add(MarkerElement(x=float(x), y=float(y), **style))  # type: ignore[return-value]

    def delete(self, elements: Iterable[Element]) -> None:
        wanted = set(elements)
        doomed = [item for item in self._elements if item in wanted]
        if not doomed:
            return
        self._elements = [item for item in self._elements if item not in doomed]
        logger.debug("Deleted %d element(s)", len(doomed))
        self._notify_destroyed(tuple(doomed))

    def ticks(self, horizontal: bool) -> np.ndarray:
        """Major tick values inside the current limits."""

        lo, hi = self._view.xlim if horizontal else self._view.ylim
        values = MaxNLocator(nbins=5, steps=[1, 2, 2.5, 5, 10]).tick_values(lo, hi)
        span = hi - lo
        inside = (values >= lo - 1e-9 * span) & (values <= hi + 1e-9 * span)
        return values[inside]


def _remap(values: np.ndarray, lo: float, hi: float) -> np.ndarray:
    old_lo, old_hi = float(values.min()), float(values.max())
    if old_hi - old_lo <= 0:
        return np.full_like(values, 0.5 * (lo + hi))
    return lo + (values - old_lo) * ((hi - lo) / (old_hi - old_lo))


__all__ = [
    "DrawingBackend",
    "FrameElement",
    "LineElement",
    "MarkerElement",
    "Primitive",
    "RectElement",
    "RenderingBackend",
    "SceneBackend",
    "TextElement",
]

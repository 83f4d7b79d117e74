"""Annotation builders.

Each builder draws primitives through the engine's drawing backend, files
them into the shared collections and registers the anchors that keep them
attached to the frame:

* ``belowX`` / ``leftY`` / ``rightY``: decorations along each side, used as
  anchors for the axis labels;
* ``generated``: everything a builder drew, deleted by :func:`reset`;
* ``topLayer``: raised above other annotations after every pass.

Builders never run a layout pass themselves except :func:`reset` and
:func:`clear_axis`, which need one to prune what they removed.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from matplotlib import rcParams

from .anchors import Computed, MarginLike
from .config import LayoutConfig
from .engine import TOP_LAYER, LayoutEngine
from .handles import Element
from .positions import PositionAttribute

logger = logging.getLogger(__name__)

P = PositionAttribute

BELOW_X = "belowX"
LEFT_Y = "leftY"
RIGHT_Y = "rightY"
GENERATED = "generated"
X_LABEL = "xLabel"
Y_LABEL = "yLabel"
TITLE = "title"

Orientation = str


class DegenerateInputError(ValueError):
    """An annotation request whose geometry is empty or inverted."""


def _is_x(orientation: Orientation) -> bool:
    key = str(orientation).strip().lower()
    if key not in ("x", "y"):
        raise ValueError(f"orientation must be 'x' or 'y', got {orientation!r}")
    return key == "x"


def _reject(engine: LayoutEngine, message: str) -> DegenerateInputError:
    error = DegenerateInputError(message)
    logger.warning("%s", error)
    engine.add_diagnostic(str(error))
    return error


def _per_item(value: Union[str, Sequence[str], None], default: str, count: int, what: str) -> List[str]:
    if value is None:
        return [default] * count
    if isinstance(value, str):
        return [value] * count
    values = list(value)
    if len(values) != count:
        raise ValueError(f"expected {count} {what}, got {len(values)}")
    return values


def _format_ticks(values: np.ndarray) -> List[str]:
    return [f"{value:g}" for value in values]


# -- tick bridges and tick-like labels ---------------------------------------


def add_tick_bridge(
    engine: LayoutEngine,
    orientation: Orientation = "x",
    ticks: Optional[Sequence[float]] = None,
    labels: Optional[Sequence[str]] = None,
    alignment: Union[str, Sequence[str], None] = None,
    rotation: float = 0.0,
    use_auto_collections: bool = False,
    add_anchors: bool = True,
) -> List[Element]:
    """Tick marks joined by a bridge line, with labels, outside the frame.

    Tick positions along the axis are data values and never move; the
    anchors only set how far below (or left of) the frame the bridge sits,
    the tick length and the label gap.
    """

    use_x = _is_x(orientation)
    backend = engine.backend
    cfg = engine.config
    values = np.asarray(backend.ticks(use_x) if ticks is None else ticks, dtype=float).ravel()
    if values.size == 0:
        _reject(engine, f"{orientation} tick bridge has no tick values")
        return []
    texts = list(labels) if labels else _format_ticks(values)
    if len(texts) != values.size:
        raise ValueError(f"expected {values.size} tick labels, got {len(texts)}")
    aligns = _per_item(alignment, "center" if use_x else "middle", values.size, "tick alignments")

    line_style = {"line_width": cfg.tick_line_width}
    text_style = {"font_size": cfg.tick_font_size, "rotation": rotation}
    lo, hi = float(values.min()), float(values.max())
    if use_x:
        tick_lines = [backend.create_line([v, v], [1.0, 0.0], **line_style) for v in values]
        bridge = backend.create_line([lo, hi], [1.0, 1.0], **line_style)
        tick_labels = [
            backend.create_text(v, 0.0, text, halign=align, valign="top", **text_style)
            for v, text, align in zip(values, texts, aligns)
        ]
    else:
        tick_lines = [backend.create_line([1.0, 0.0], [v, v], **line_style) for v in values]
        bridge = backend.create_line([1.0, 1.0], [lo, hi], **line_style)
        tick_labels = [
            backend.create_text(0.0, v, text, halign="right", valign=align, **text_style)
            for v, text, align in zip(values, texts, aligns)
        ]

    if use_auto_collections:
        axis = "X" if use_x else "Y"
        bridge_ref = f"autoAxis{axis}Bridge"
        ticks_ref = f"autoAxis{axis}Ticks"
        labels_ref = f"autoAxis{axis}TickLabels"
        engine.add_to_collection(bridge_ref, [bridge])
        engine.add_to_collection(ticks_ref, tick_lines)
        engine.add_to_collection(labels_ref, tick_labels)
    else:
        bridge_ref, ticks_ref, labels_ref = [bridge], tick_lines, tick_labels

    if add_anchors:
        frame = backend.frame
        if use_x:
            engine.anchor(bridge_ref, P.TOP, frame, P.BOTTOM, "axis_padding_bottom", "x tick bridge below axis")
            engine.anchor(ticks_ref, P.HEIGHT, margin="tick_length", description="x tick length")
            engine.anchor(ticks_ref, P.TOP, bridge_ref, P.BOTTOM, 0.0, "x ticks below bridge")
            engine.anchor(
                labels_ref, P.TOP, ticks_ref, P.BOTTOM, "tick_label_offset", "x tick labels below ticks"
            )
        else:
            engine.anchor(bridge_ref, P.RIGHT, frame, P.LEFT, "axis_padding_left", "y tick bridge left of axis")
            engine.anchor(ticks_ref, P.WIDTH, margin="tick_length", description="y tick length")
            engine.anchor(ticks_ref, P.RIGHT, bridge_ref, P.LEFT, 0.0, "y ticks left of bridge")
            engine.anchor(
                labels_ref, P.RIGHT, ticks_ref, P.LEFT, "tick_label_offset", "y tick labels left of ticks"
            )

    drawn = tick_labels + tick_lines + [bridge]
    engine.add_to_collection(BELOW_X if use_x else LEFT_Y, drawn)
    engine.add_to_collection(GENERATED, drawn)
    return drawn


def add_tickless_labels(
    engine: LayoutEngine,
    orientation: Orientation = "x",
    ticks: Optional[Sequence[float]] = None,
    labels: Optional[Sequence[str]] = None,
    alignment: Union[str, Sequence[str], None] = None,
) -> List[Element]:
    """Labels where ticks would be, without the tick marks."""

    use_x = _is_x(orientation)
    backend = engine.backend
    cfg = engine.config
    values = np.asarray(backend.ticks(use_x) if ticks is None else ticks, dtype=float).ravel()
    if values.size == 0:
        _reject(engine, f"{orientation} tickless labels have no tick values")
        return []
    texts = list(labels) if labels else _format_ticks(values)
    if len(texts) != values.size:
        raise ValueError(f"expected {values.size} labels, got {len(texts)}")
    aligns = _per_item(alignment, "center" if use_x else "middle", values.size, "label alignments")

    if use_x:
        drawn = [
            backend.create_text(v, 0.0, text, font_size=cfg.tick_font_size, halign=align, valign="top")
            for v, text, align in zip(values, texts, aligns)
        ]
        engine.anchor(drawn, P.TOP, backend.frame, P.BOTTOM, "axis_padding_bottom", "x tickless labels below axis")
    else:
        drawn = [
            backend.create_text(0.0, v, text, font_size=cfg.tick_font_size, halign="right", valign=align)
            for v, text, align in zip(values, texts, aligns)
        ]
        engine.anchor(drawn, P.RIGHT, backend.frame, P.LEFT, "axis_padding_left", "y tickless labels left of axis")

    engine.add_to_collection(BELOW_X if use_x else LEFT_Y, drawn)
    engine.add_to_collection(GENERATED, drawn)
    return drawn


# -- axis labels and title ---------------------------------------------------


def _replace_slot(engine: LayoutEngine, slot: str) -> None:
    old = engine.get_collection(slot)
    if old:
        engine.remove_elements(old)
        engine.backend.delete(old)


def add_x_label(engine: LayoutEngine, text: str, anchor_to_axis: bool = False) -> Element:
    """Centered label below the x decorations (or directly below the frame)."""

    _replace_slot(engine, X_LABEL)
    backend = engine.backend
    view = backend.frame_view()
    label = backend.create_text(
        0.5 * sum(view.xlim), view.ylim[0], text,
        font_size=engine.config.label_font_size, halign="center", valign="top",
    )
    engine.add_to_collection(X_LABEL, [label])
    if anchor_to_axis:
        engine.anchor(label, P.TOP, backend.frame, P.BOTTOM, "axis_label_offset_bottom", "x label below axis")
    else:
        engine.anchor(label, P.TOP, BELOW_X, P.BOTTOM, "decoration_label_offset_bottom", "x label below belowX")
    engine.anchor(label, P.HCENTER, backend.frame, P.HCENTER, 0.0, "x label centered on axis")
    return label


def add_y_label(engine: LayoutEngine, text: str, anchor_to_axis: bool = False) -> Element:
    """Rotated label left of the y decorations (or directly left of the frame)."""

    _replace_slot(engine, Y_LABEL)
    backend = engine.backend
    view = backend.frame_view()
    label = backend.create_text(
        view.xlim[0], 0.5 * sum(view.ylim), text,
        font_size=engine.config.label_font_size, halign="center", valign="bottom", rotation=90.0,
    )
    engine.add_to_collection(Y_LABEL, [label])
    if anchor_to_axis:
        engine.anchor(label, P.RIGHT, backend.frame, P.LEFT, "axis_label_offset_left", "y label left of axis")
    else:
        engine.anchor(label, P.RIGHT, LEFT_Y, P.LEFT, "decoration_label_offset_left", "y label left of leftY")
    engine.anchor(label, P.VCENTER, backend.frame, P.VCENTER, 0.0, "y label centered on axis")
    return label


def add_title(engine: LayoutEngine, text: str) -> Element:
    _replace_slot(engine, TITLE)
    backend = engine.backend
    view = backend.frame_view()
    title = backend.create_text(
        0.5 * sum(view.xlim), view.ylim[1], text,
        font_size=engine.config.title_font_size, halign="center", valign="bottom",
    )
    engine.add_to_collection(TITLE, [title])
    engine.anchor(title, P.BOTTOM, backend.frame, P.TOP, "axis_padding_top", "title above axis")
    engine.anchor(title, P.HCENTER, backend.frame, P.HCENTER, 0.0, "title centered on axis")
    return title


# -- scale bars --------------------------------------------------------------


def _last_tick_interval(engine: LayoutEngine, use_x: bool) -> Optional[float]:
    ticks = np.asarray(engine.backend.ticks(use_x), dtype=float)
    if ticks.size < 2:
        return None
    return float(ticks[-1] - ticks[-2])


def add_scale_bar(
    engine: LayoutEngine,
    orientation: Orientation = "x",
    length: Optional[float] = None,
    units: Optional[str] = None,
    use_auto_collections: bool = False,
    add_anchors: bool = True,
    font_size: Optional[float] = None,
) -> List[Element]:
    """Bar of ``length`` data units with a text label, at the lower right.

    Without ``length`` the bar spans the last major tick interval.  The x
    bar ends flush with the outer edge of the y bar, so both bars share
    ``scale_bar_thickness``.
    """

    use_x = _is_x(orientation)
    backend = engine.backend
    cfg = engine.config
    if length is None:
        intervals = [_last_tick_interval(engine, use_x)]
        if cfg.keep_auto_scale_bars_equal and use_auto_collections:
            intervals.append(_last_tick_interval(engine, not use_x))
        if any(value is None for value in intervals):
            _reject(engine, f"{orientation} scale bar needs at least two ticks to pick a length")
            return []
        length = min(intervals)
    if length <= 0:
        _reject(engine, f"{orientation} scale bar length must be positive, got {length:g}")
        return []

    unit_name = units or (cfg.x_units if use_x else cfg.y_units)
    text = f"{length:g} {unit_name}" if unit_name else f"{length:g}"
    size = font_size if font_size is not None else cfg.scale_bar_font_size
    view = backend.frame_view()
    xl, yl = view.xlim, view.ylim
    if use_x:
        bar = backend.create_rect(xl[1] - length, yl[0], length, 1.0)
        label = backend.create_text(xl[1], yl[0], text, font_size=size, halign="right", valign="top")
    else:
        bar = backend.create_rect(xl[1], yl[0], 1.0, length)
        label = backend.create_text(
            xl[1], yl[0], text, font_size=size, halign="right", valign="bottom", rotation=-90.0
        )

    if use_auto_collections:
        axis = "X" if use_x else "Y"
        bar_ref, label_ref = f"autoScaleBar{axis}Rect", f"autoScaleBar{axis}Text"
        engine.add_to_collection(bar_ref, [bar])
        engine.add_to_collection(label_ref, [label])
    else:
        bar_ref, label_ref = [bar], [label]

    if add_anchors:
        frame = backend.frame
        if use_x:
            engine.anchor(bar_ref, P.HEIGHT, margin="scale_bar_thickness", description="x scale bar thickness")
            engine.anchor(bar_ref, P.TOP, frame, P.BOTTOM, "axis_padding_bottom", "x scale bar below axis")
            engine.anchor(
                bar_ref, P.RIGHT, frame, P.RIGHT,
                Computed(lambda c: c.axis_padding_right + c.scale_bar_thickness),
                "x scale bar flush with outer edge of y scale bar",
            )
            engine.anchor(label_ref, P.TOP, bar_ref, P.BOTTOM, 0.0, "x scale bar label below bar")
            engine.anchor(label_ref, P.RIGHT, bar_ref, P.RIGHT, 0.0, "x scale bar label flush right")
        else:
            engine.anchor(bar_ref, P.WIDTH, margin="scale_bar_thickness", description="y scale bar thickness")
            engine.anchor(bar_ref, P.LEFT, frame, P.RIGHT, "axis_padding_right", "y scale bar right of axis")
            engine.anchor(
                bar_ref, P.BOTTOM, frame, P.BOTTOM,
                Computed(lambda c: c.axis_padding_bottom + c.scale_bar_thickness),
                "y scale bar flush with bottom of x scale bar",
            )
            engine.anchor(label_ref, P.LEFT, bar_ref, P.RIGHT, 0.0, "y scale bar label right of bar")
            engine.anchor(label_ref, P.BOTTOM, bar_ref, P.BOTTOM, 0.0, "y scale bar label flush bottom")

    drawn = [bar, label]
    engine.add_to_collection(BELOW_X if use_x else RIGHT_Y, drawn)
    engine.add_to_collection(GENERATED, drawn)
    return drawn


# -- markers, point labels and intervals -------------------------------------


def _below_axis_label_margin(offset: float) -> Computed:
    # clears the marker row, matching interval labels
    return Computed(
        lambda c: c.axis_padding_bottom + c.marker_diameter + c.marker_label_offset + offset
    )


def _marker_third(config: LayoutConfig) -> float:
    return config.marker_diameter / 3.0


def add_marker_x(
    engine: LayoutEngine,
    x: float,
    label: str = "",
    interval: Optional[Sequence[float]] = None,
    text_offset_x: float = 0.0,
    text_offset_y: float = 0.0,
    halign: str = "center",
    valign: str = "top",
    marker: str = "o",
    color: str = "0.1",
    label_color: str = "black",
    interval_color: str = "0.5",
) -> Tuple[Element, Element]:
    """Marker just below the frame at data position ``x`` with a label.

    An optional ``interval`` draws a thin bar behind the marker, centered on
    it vertically.
    """

    backend = engine.backend
    cfg = engine.config
    y0 = backend.frame_view().ylim[0]

    bar = None
    if interval is not None:
        if len(interval) != 2:
            raise ValueError("interval must have exactly two values")
        lo, hi = float(interval[0]), float(interval[1])
        if hi - lo > 0:
            bar = backend.create_rect(lo, y0, hi - lo, 1.0, color=interval_color)
        else:
            _reject(engine, f"marker {label!r} interval skipped: endpoints must be increasing, got [{lo:g}, {hi:g}]")

    dot = backend.create_marker(x, y0, size=1.0, marker=marker, color=color)
    text = backend.create_text(
        x, y0, label, font_size=cfg.tick_font_size, halign=halign, valign=valign, color=label_color
    )

    frame = backend.frame
    engine.anchor(dot, P.MARKER_DIAMETER, margin="marker_diameter", description=f"marker {label!r} diameter")
    engine.anchor(dot, P.TOP, frame, P.BOTTOM, "axis_padding_bottom", f"marker {label!r} below axis")
    engine.anchor(
        text, P.from_vertical_align(valign), frame, P.BOTTOM,
        _below_axis_label_margin(text_offset_y), f"marker label {label!r} below axis",
    )
    if text_offset_x:
        engine.anchor(
            text, P.from_horizontal_align(halign), x, P.LITERAL, text_offset_x,
            f"marker label {label!r} offset {text_offset_x:g} from x={x:g}",
        )
    if bar is not None:
        engine.anchor(bar, P.HEIGHT, margin=Computed(_marker_third), description=f"marker {label!r} interval height")
        engine.anchor(bar, P.VCENTER, dot, P.VCENTER, 0.0, f"marker {label!r} interval centered on marker")

    drawn = [dot, text] + ([bar] if bar is not None else [])
    engine.add_to_collection(BELOW_X, drawn)
    engine.add_to_collection(GENERATED, drawn)
    engine.add_to_collection(TOP_LAYER, drawn)
    return dot, text


def add_label_x(engine: LayoutEngine, x: float, label: str, label_color: str = "black") -> Element:
    backend = engine.backend
    text = backend.create_text(
        x, backend.frame_view().ylim[0], label,
        font_size=engine.config.tick_font_size, halign="center", valign="top", color=label_color,
    )
    engine.anchor(text, P.TOP, backend.frame, P.BOTTOM, "axis_padding_bottom", f"label {label!r} below axis")
    engine.add_to_collection(BELOW_X, [text])
    return text


def add_interval_x(
    engine: LayoutEngine,
    interval: Sequence[float],
    label: str = "",
    error_interval: Optional[Sequence[float]] = None,
    text_offset_x: float = 0.0,
    text_offset_y: float = 0.0,
    halign: str = "center",
    valign: str = "top",
    color: str = "0.1",
    label_color: str = "black",
    error_color: str = "0.5",
) -> Tuple[List[Element], Optional[Element]]:
    """Horizontal bar spanning ``interval`` below the frame, with a label.

    Returns ``(bars, label)``; non-increasing intervals create nothing and
    return ``([], None)``.
    """

    if len(interval) != 2:
        raise ValueError("interval must have exactly two values")
    lo, hi = float(interval[0]), float(interval[1])
    if hi <= lo:
        _reject(engine, f"interval {label!r} skipped: endpoints must be increasing, got [{lo:g}, {hi:g}]")
        return [], None

    backend = engine.backend
    cfg = engine.config
    y0 = backend.frame_view().ylim[0]

    error_bar = None
    if error_interval is not None:
        if len(error_interval) != 2:
            raise ValueError("error_interval must have exactly two values")
        elo, ehi = float(error_interval[0]), float(error_interval[1])
        if ehi > elo:
            error_bar = backend.create_rect(elo, y0, ehi - elo, 1.0, color=error_color)
    bar = backend.create_rect(lo, y0, hi - lo, 1.0, color=color)
    text = backend.create_text(
        0.5 * (lo + hi), y0, label,
        font_size=cfg.tick_font_size, halign=halign, valign=valign, color=label_color,
    )

    frame = backend.frame
    engine.anchor(bar, P.HEIGHT, margin="interval_thickness", description=f"interval {label!r} thickness")
    # interval centers line up with marker centers
    engine.anchor(
        bar, P.VCENTER, frame, P.BOTTOM,
        Computed(lambda c: c.axis_padding_bottom + c.marker_diameter / 2.0),
        f"interval {label!r} below axis",
    )
    engine.anchor(
        text, P.from_vertical_align(valign), frame, P.BOTTOM,
        _below_axis_label_margin(text_offset_y), f"interval label {label!r} below axis",
    )
    if text_offset_x:
        middle = 0.5 * (lo + hi)
        engine.anchor(
            text, P.from_horizontal_align(halign), middle, P.LITERAL, text_offset_x,
            f"interval label {label!r} offset {text_offset_x:g} from x={middle:g}",
        )
    if error_bar is not None:
        engine.anchor(
            error_bar, P.HEIGHT, margin=Computed(_marker_third), description=f"interval {label!r} error thickness"
        )
        engine.anchor(error_bar, P.VCENTER, bar, P.VCENTER, 0.0, f"interval {label!r} error centered")

    bars = [bar] + ([error_bar] if error_bar is not None else [])
    drawn = bars + [text]
    engine.add_to_collection(BELOW_X, drawn)
    engine.add_to_collection(GENERATED, drawn)
    engine.add_to_collection(TOP_LAYER, drawn)
    return bars, text


def add_labeled_span(
    engine: LayoutEngine,
    orientation: Orientation,
    span: Sequence,
    labels: Union[str, Sequence[str]],
    colors: Union[str, Sequence[str], None] = None,
    leave_in_place: bool = False,
    manual_pos: float = 0.0,
) -> Tuple[List[Element], List[Element]]:
    """Colored line segments with centered labels, one per ``[start, stop]``.

    ``span`` is a 2 x N array of limits (a single pair is accepted).  With
    ``leave_in_place`` the segments stay at ``manual_pos`` on the other axis
    and only the labels are anchored to them.
    """

    use_x = _is_x(orientation)
    limits = np.asarray(span, dtype=float)
    if limits.ndim == 1 and limits.size == 2:
        limits = limits.reshape(2, 1)
    if limits.ndim != 2 or limits.shape[0] != 2:
        raise ValueError(f"span must be a 2 x N array of limits, got shape {limits.shape}")
    count = limits.shape[1]
    texts = [labels] if isinstance(labels, str) else list(labels)
    if len(texts) != count:
        raise ValueError(f"expected {count} span labels, got {len(texts)}")
    palette = _per_item(colors, "black", count, "span colors")
    if np.any(limits[1] <= limits[0]):
        _reject(engine, f"{orientation} labeled span skipped: every span must have start < stop")
        return [], []

    backend = engine.backend
    cfg = engine.config
    centers = limits.mean(axis=0)
    lines: List[Element] = []
    words: List[Element] = []
    for (start, stop), middle, text, color in zip(limits.T, centers, texts, palette):
        if use_x:
            lines.append(
                backend.create_line([start, stop], [manual_pos, manual_pos], line_width=cfg.tick_line_width, color=color)
            )
            words.append(
                backend.create_text(middle, 0.0, text, font_size=cfg.tick_font_size, halign="center", valign="top", color=color)
            )
        else:
            lines.append(
                backend.create_line([manual_pos, manual_pos], [start, stop], line_width=cfg.tick_line_width, color=color)
            )
            words.append(
                backend.create_text(0.0, middle, text, font_size=cfg.tick_font_size, halign="right", valign="middle", color=color)
            )

    frame = backend.frame
    if use_x:
        if not leave_in_place:
            engine.anchor(lines, P.TOP, frame, P.BOTTOM, "axis_padding_bottom", "x labeled span below axis")
        engine.anchor(words, P.TOP, lines, P.BOTTOM, "tick_label_offset", "x labeled span labels below spans")
    else:
        if not leave_in_place:
            engine.anchor(lines, P.RIGHT, frame, P.LEFT, "axis_padding_left", "y labeled span left of axis")
        engine.anchor(words, P.RIGHT, lines, P.LEFT, "tick_label_offset", "y labeled span labels left of spans")

    drawn = lines + words
    if not leave_in_place:
        engine.add_to_collection(BELOW_X if use_x else LEFT_Y, drawn)
    engine.add_to_collection(GENERATED, drawn)
    engine.add_to_collection(TOP_LAYER, drawn)
    return lines, words


def _default_colors(count: int) -> List[str]:
    cycle = rcParams["axes.prop_cycle"].by_key().get("color", ["black"])
    return [cycle[i % len(cycle)] for i in range(count)]


def add_colored_labels(
    engine: LayoutEngine,
    labels: Sequence[str],
    colors: Optional[Sequence[str]] = None,
    pos_x: Union[PositionAttribute, str] = P.RIGHT,
    pos_y: Union[PositionAttribute, str] = P.TOP,
    font_size: Optional[float] = None,
    spacing: MarginLike = "tick_label_offset",
) -> List[Element]:
    """Stack of colored text lines in a corner inside the frame.

    ``pos_x`` / ``pos_y`` pick the corner; the label nearest that corner is
    anchored to the frame and each following label hangs off its
    neighbour.  Colors default to matplotlib's property cycle.
    """

    pos_x = P.coerce(pos_x)
    pos_y = P.coerce(pos_y)
    if pos_y not in (P.TOP, P.BOTTOM):
        raise ValueError(f"colored labels stack from TOP or BOTTOM, got {pos_y.name}")
    halign = pos_x.to_horizontal_align()
    valign = pos_y.to_vertical_align()
    count = len(labels)
    if count == 0:
        return []
    palette = list(colors) if colors is not None else _default_colors(count)
    if len(palette) != count:
        raise ValueError(f"expected {count} label colors, got {len(palette)}")

    backend = engine.backend
    view = backend.frame_view()
    size = font_size if font_size is not None else engine.config.label_font_size
    texts = [
        backend.create_text(view.xlim[0], view.ylim[1], label, font_size=size, halign=halign, valign=valign, color=color)
        for label, color in zip(labels, palette)
    ]
    engine.add_to_collection(TOP_LAYER, texts)

    frame = backend.frame
    from_top = pos_y is P.TOP
    root = 0 if from_top else count - 1
    step = -1 if from_top else 1
    for i, text in enumerate(texts):
        if i == root:
            engine.anchor(text, pos_y, frame, pos_y, 0.0, f"colored label {labels[i]!r} to axis {pos_y.value}")
        else:
            engine.anchor(
                text, pos_y, texts[i + step], pos_y.opposite(), spacing,
                f"colored label {labels[i]!r} {pos_y.value} to {labels[i + step]!r} {pos_y.opposite().value}",
            )
    engine.anchor(texts, pos_x, frame, pos_x, 0.0, f"colored labels to axis {pos_x.value}")
    engine.add_to_collection(GENERATED, texts)
    return texts


# -- automatic axes and scale bars -------------------------------------------


class AutoAnnotation:
    """Pre-update hook redrawing a decoration from the current ticks.

    The first draw registers anchors against named collections; later draws
    only refill those collections, so the anchors survive every redraw.
    """

    def __init__(self, orientation: Orientation) -> None:
        self.use_x = _is_x(orientation)
        self.elements: List[Element] = []

    @property
    def orientation(self) -> str:
        return "x" if self.use_x else "y"

    def draw(self, engine: LayoutEngine, first: bool) -> List[Element]:
        raise NotImplementedError

    def regenerate(self, engine: LayoutEngine, first: bool = False) -> None:
        old = self.elements
        engine.backend.delete(old)
        self.elements = self.draw(engine, first)
        # after drawing, so collection-backed anchors never see an empty set
        engine.remove_elements(old)

    def __call__(self, engine: LayoutEngine) -> None:
        self.regenerate(engine)

    def discard(self, engine: LayoutEngine) -> None:
        engine.backend.delete(self.elements)
        engine.remove_elements(self.elements)
        self.elements = []
        engine.remove_pre_update_hook(self)


class AutoAxis(AutoAnnotation):
    def __init__(self, orientation: Orientation, label: Optional[str] = None) -> None:
        super().__init__(orientation)
        self.label = label

    def draw(self, engine: LayoutEngine, first: bool) -> List[Element]:
        drawn = add_tick_bridge(
            engine, self.orientation, use_auto_collections=True, add_anchors=first
        )
        if first and self.label is not None:
            (add_x_label if self.use_x else add_y_label)(engine, self.label)
        return drawn


class AutoScaleBar(AutoAnnotation):
    def draw(self, engine: LayoutEngine, first: bool) -> List[Element]:
        return add_scale_bar(engine, self.orientation, use_auto_collections=True, add_anchors=first)


def _find_hook(engine: LayoutEngine, kind: type, orientation: Orientation) -> Optional[AutoAnnotation]:
    use_x = _is_x(orientation)
    for hook in engine.pre_update_hooks:
        if isinstance(hook, kind) and hook.use_x == use_x:
            return hook
    return None


def install_auto_axis(engine: LayoutEngine, orientation: Orientation = "x", label: Optional[str] = None) -> AutoAxis:
    """Tick bridge that is redrawn from fresh tick values on every update."""

    hook = _find_hook(engine, AutoAxis, orientation)
    if hook is None:
        hook = AutoAxis(orientation, label)
        hook.regenerate(engine, first=True)
        engine.add_pre_update_hook(hook)
        logger.info("Installed auto %s axis", hook.orientation)
    return hook  # type: ignore[return-value]


def remove_auto_axis(engine: LayoutEngine, orientation: Orientation = "x") -> bool:
    hook = _find_hook(engine, AutoAxis, orientation)
    if hook is None:
        return False
    hook.discard(engine)
    return True


def install_auto_scale_bar(engine: LayoutEngine, orientation: Orientation = "x") -> AutoScaleBar:
    """Scale bar whose length follows the last major tick interval."""

    hook = _find_hook(engine, AutoScaleBar, orientation)
    if hook is None:
        hook = AutoScaleBar(orientation)
        hook.regenerate(engine, first=True)
        engine.add_pre_update_hook(hook)
        logger.info("Installed auto %s scale bar", hook.orientation)
    return hook  # type: ignore[return-value]


def remove_auto_scale_bar(engine: LayoutEngine, orientation: Orientation = "x") -> bool:
    hook = _find_hook(engine, AutoScaleBar, orientation)
    if hook is None:
        return False
    hook.discard(engine)
    return True


# -- bulk removal ------------------------------------------------------------


def _delete_collection(engine: LayoutEngine, name: str) -> None:
    doomed = engine.get_collection(name)
    if doomed:
        engine.remove_elements(doomed)
        engine.backend.delete(doomed)


def clear_axis(engine: LayoutEngine, orientation: Orientation = "x") -> None:
    """Remove every decoration and the label along one axis."""

    use_x = _is_x(orientation)
    remove_auto_axis(engine, orientation)
    remove_auto_scale_bar(engine, orientation)
    _delete_collection(engine, BELOW_X if use_x else LEFT_Y)
    _delete_collection(engine, X_LABEL if use_x else Y_LABEL)
    engine.update()


def reset(engine: LayoutEngine) -> None:
    """Remove automatic decorations and everything builders generated."""

    for orientation in ("x", "y"):
        remove_auto_axis(engine, orientation)
        remove_auto_scale_bar(engine, orientation)
    _delete_collection(engine, GENERATED)
    engine.update()


__all__ = [
    "AutoAnnotation",
    "AutoAxis",
    "AutoScaleBar",
    "BELOW_X",
    "DegenerateInputError",
    "GENERATED",
    "LEFT_Y",
    "RIGHT_Y",
    "add_colored_labels",
    "add_interval_x",
    "add_label_x",
    "add_labeled_span",
    "add_marker_x",
    "add_scale_bar",
    "add_tick_bridge",
    "add_tickless_labels",
    "add_title",
    "add_x_label",
    "add_y_label",
    "clear_axis",
    "install_auto_axis",
    "install_auto_scale_bar",
    "remove_auto_axis",
    "remove_auto_scale_bar",
    "reset",
]

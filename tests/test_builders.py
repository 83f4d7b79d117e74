import logging

import numpy as np
import pytest

from axanchor.backend import LineElement, RectElement, SceneBackend, TextElement
from axanchor.builders import (
    DegenerateInputError,
    add_colored_labels,
    add_interval_x,
    add_label_x,
    add_labeled_span,
    add_marker_x,
    add_scale_bar,
    add_tick_bridge,
    add_tickless_labels,
    add_title,
    add_x_label,
    add_y_label,
    clear_axis,
    install_auto_axis,
    install_auto_scale_bar,
    remove_auto_axis,
    remove_auto_scale_bar,
    reset,
)
from axanchor.config import LayoutConfig
from axanchor.engine import LayoutEngine
from axanchor.geometry import FrameView
from axanchor.positions import PositionAttribute as P


def _engine():
    # 1 native unit per cm along x, 2 along y
    backend = SceneBackend(FrameView(xlim=(0.0, 10.0), ylim=(0.0, 10.0), width=10.0, height=5.0))
    return backend, LayoutEngine(backend, LayoutConfig())


def _top(backend, element):
    return backend.query_native_geometry(element).ymax


def test_x_tick_bridge_stacks_below_the_frame():
    backend, engine = _engine()
    drawn = add_tick_bridge(engine, "x", ticks=[0.0, 5.0, 10.0])
    engine.update()

    labels = [e for e in drawn if isinstance(e, TextElement)]
    lines = [e for e in drawn if isinstance(e, LineElement)]
    bridge, ticks = lines[-1], lines[:-1]

    assert [t.text for t in labels] == ["0", "5", "10"]
    assert bridge.ydata == pytest.approx([-0.2, -0.2])
    assert bridge.xdata == pytest.approx([0.0, 10.0])
    for tick, x in zip(ticks, (0.0, 5.0, 10.0)):
        assert tick.xdata == pytest.approx([x, x])
        assert sorted(tick.ydata) == pytest.approx([-0.3, -0.2])
    for label in labels:
        assert _top(backend, label) == pytest.approx(-0.5)
    assert set(drawn) <= set(engine.get_collection("belowX"))
    assert set(drawn) <= set(engine.get_collection("generated"))


def test_y_tick_bridge_stacks_left_of_the_frame():
    backend, engine = _engine()
    drawn = add_tick_bridge(engine, "y", ticks=[2.0, 8.0], labels=["low", "high"])
    engine.update()

    labels = [e for e in drawn if isinstance(e, TextElement)]
    bridge = drawn[-1]

    assert bridge.xdata == pytest.approx([-0.1, -0.1])
    for label in labels:
        assert backend.query_native_geometry(label).xmax == pytest.approx(-0.25)
    assert set(drawn) <= set(engine.get_collection("leftY"))


def test_tick_bridge_label_count_must_match():
    _, engine = _engine()
    with pytest.raises(ValueError):
        add_tick_bridge(engine, "x", ticks=[1.0, 2.0], labels=["one"])


def test_invalid_orientation():
    _, engine = _engine()
    with pytest.raises(ValueError):
        add_tick_bridge(engine, "z")


def test_tickless_labels_sit_at_the_axis_padding():
    backend, engine = _engine()
    labels = add_tickless_labels(engine, "x", ticks=[1.0, 2.0], labels=["a", "b"])
    engine.update()

    assert [_top(backend, label) for label in labels] == pytest.approx([-0.2, -0.2])


def test_x_label_hangs_below_decorations_and_replaces_previous():
    backend, engine = _engine()
    add_tick_bridge(engine, "x", ticks=[0.0, 10.0])
    first = add_x_label(engine, "Time")
    second = add_x_label(engine, "Time (s)")
    engine.update()

    below = engine.get_collection("belowX")
    lowest = min(backend.query_native_geometry(e).ymin for e in below)

    assert not backend.exists(first)
    assert engine.get_collection("xLabel") == (second,)
    assert _top(backend, second) == pytest.approx(lowest - 0.1)
    assert backend.query_native_geometry(second).center[0] == pytest.approx(5.0)


def test_y_label_anchored_to_axis():
    backend, engine = _engine()
    label = add_y_label(engine, "Signal", anchor_to_axis=True)
    engine.update()

    box = backend.query_native_geometry(label)
    assert box.xmax == pytest.approx(-0.55)
    assert box.center[1] == pytest.approx(5.0)
    assert box.height > box.width


def test_title_sits_above_the_frame():
    backend, engine = _engine()
    title = add_title(engine, "Trial 1")
    engine.update()

    box = backend.query_native_geometry(title)
    assert box.ymin == pytest.approx(10.2)
    assert box.center[0] == pytest.approx(5.0)


def test_scale_bars_meet_at_the_corner():
    backend, engine = _engine()
    bar_x, text_x = add_scale_bar(engine, "x", length=2.0, units="s")
    bar_y, text_y = add_scale_bar(engine, "y", length=4.0)
    engine.update()

    assert text_x.text == "2 s"
    assert text_y.text == "4"
    assert (bar_x.width, bar_x.height) == pytest.approx((2.0, 0.3))
    assert bar_x.x + bar_x.width == pytest.approx(10.25)
    assert bar_x.y + bar_x.height == pytest.approx(-0.2)
    assert (bar_y.x, bar_y.width) == pytest.approx((10.1, 0.15))
    assert bar_y.y == pytest.approx(bar_x.y)
    assert bar_y.x + bar_y.width == pytest.approx(bar_x.x + bar_x.width)
    assert _top(backend, text_x) == pytest.approx(bar_x.y)
    assert bar_y in engine.get_collection("rightY")


def test_scale_bar_length_must_be_positive(caplog):
    backend, engine = _engine()
    with caplog.at_level(logging.WARNING, logger="axanchor.builders"):
        assert add_scale_bar(engine, "x", length=0.0) == []

    assert backend.elements() == ()
    assert len(engine.diagnostics) == 1
    assert "scale bar" in caplog.text


def test_marker_and_label_below_the_frame():
    backend, engine = _engine()
    dot, text = add_marker_x(engine, 4.0, "stim", interval=(3.0, 6.0))
    later = add_label_x(engine, 8.0, "end")
    engine.update()

    dot_box = backend.query_native_geometry(dot)
    bar = [e for e in engine.get_collection("belowX") if isinstance(e, RectElement)][0]

    assert dot_box.height == pytest.approx(0.4)
    assert dot_box.ymax == pytest.approx(-0.2)
    assert _top(backend, text) == pytest.approx(-0.8)
    assert bar.height == pytest.approx(0.4 / 3.0)
    assert bar.y + bar.height / 2 == pytest.approx(dot_box.center[1])
    assert _top(backend, later) == pytest.approx(-0.2)
    assert backend.elements().index(later) < backend.elements().index(dot)


def test_marker_label_offset_is_relative_to_the_marker():
    backend, engine = _engine()
    _, text = add_marker_x(engine, 4.0, "stim", text_offset_x=0.5, halign="left")
    engine.update()

    assert backend.query_native_geometry(text).xmin == pytest.approx(4.5)


def test_interval_bar_is_centered_on_the_marker_row():
    backend, engine = _engine()
    bars, text = add_interval_x(engine, (2.0, 5.0), "window", error_interval=(1.0, 6.0))
    engine.update()

    bar, error = bars
    assert (bar.x, bar.width) == pytest.approx((2.0, 3.0))
    assert bar.height == pytest.approx(0.2)
    assert bar.y + bar.height / 2 == pytest.approx(-0.4)
    assert error.y + error.height / 2 == pytest.approx(-0.4)
    assert error.height == pytest.approx(0.4 / 3.0)
    assert _top(backend, text) == pytest.approx(-0.8)


def test_marker_with_inverted_interval_is_reported(caplog):
    backend, engine = _engine()

    with caplog.at_level(logging.WARNING, logger="axanchor.builders"):
        dot, text = add_marker_x(engine, 4.0, "stim", interval=(6.0, 3.0))

    assert not any(isinstance(e, RectElement) for e in backend.elements())
    assert dot in backend.elements() and text in backend.elements()
    assert len(engine.diagnostics) == 1
    assert "increasing" in caplog.text


@pytest.mark.parametrize("interval", [(5.0, 5.0), (6.0, 2.0)])
def test_degenerate_interval_creates_nothing(interval, caplog):
    backend, engine = _engine()

    with caplog.at_level(logging.WARNING, logger="axanchor.builders"):
        result = add_interval_x(engine, interval, "bad")

    assert result == ([], None)
    assert backend.elements() == ()
    assert engine.constraints == ()
    assert len(engine.diagnostics) == 1
    assert "increasing" in caplog.text


def test_degenerate_error_type():
    assert issubclass(DegenerateInputError, ValueError)


def test_labeled_spans_below_the_frame():
    backend, engine = _engine()
    lines, labels = add_labeled_span(engine, "x", [[0.0, 4.0], [3.0, 9.0]], ["a", "b"], colors=["red", "blue"])
    engine.update()

    assert [line.color for line in lines] == ["red", "blue"]
    assert lines[0].xdata == pytest.approx([0.0, 3.0])
    assert lines[1].ydata == pytest.approx([-0.2, -0.2])
    assert _top(backend, labels[0]) == pytest.approx(-0.4)
    assert backend.query_native_geometry(labels[1]).center[0] == pytest.approx(6.5)


def test_labeled_span_accepts_a_single_pair():
    _, engine = _engine()
    lines, labels = add_labeled_span(engine, "y", [2.0, 4.0], "baseline")

    assert len(lines) == len(labels) == 1


def test_labeled_span_left_in_place():
    backend, engine = _engine()
    lines, labels = add_labeled_span(engine, "x", [1.0, 2.0], "here", leave_in_place=True, manual_pos=7.0)
    engine.update()

    assert lines[0].ydata == pytest.approx([7.0, 7.0])
    assert _top(backend, labels[0]) == pytest.approx(6.8)
    assert engine.get_collection("belowX") == ()


def test_degenerate_labeled_span_creates_nothing():
    backend, engine = _engine()

    assert add_labeled_span(engine, "x", [[0.0, 4.0], [3.0, 4.0]], ["a", "b"]) == ([], [])
    assert backend.elements() == ()
    assert len(engine.diagnostics) == 1


def test_labeled_span_label_count_must_match():
    _, engine = _engine()
    with pytest.raises(ValueError):
        add_labeled_span(engine, "x", [[0.0, 4.0], [3.0, 9.0]], ["only one"])


def test_colored_labels_stack_from_the_corner():
    backend, engine = _engine()
    texts = add_colored_labels(engine, ["one", "two", "three"], spacing=0.0)
    engine.update()

    boxes = [backend.query_native_geometry(t) for t in texts]
    assert boxes[0].ymax == pytest.approx(10.0)
    assert boxes[1].ymax == pytest.approx(boxes[0].ymin)
    assert boxes[2].ymax == pytest.approx(boxes[1].ymin)
    assert [b.xmax for b in boxes] == pytest.approx([10.0] * 3)
    assert len({t.color for t in texts}) == 3


def test_colored_labels_from_the_bottom_left():
    backend, engine = _engine()
    texts = add_colored_labels(engine, ["a", "b"], colors=["k", "r"], pos_x="left", pos_y="bottom")
    engine.update()

    boxes = [backend.query_native_geometry(t) for t in texts]
    assert boxes[1].ymin == pytest.approx(0.0)
    assert boxes[0].ymin == pytest.approx(boxes[1].ymax + 0.2)
    assert boxes[0].xmin == pytest.approx(0.0)


def test_colored_labels_reject_vertical_center():
    _, engine = _engine()
    with pytest.raises(ValueError):
        add_colored_labels(engine, ["a"], pos_y=P.VCENTER)


def test_auto_axis_regenerates_ticks_on_zoom():
    backend, engine = _engine()
    install_auto_axis(engine, "x", label="Time")
    engine.update()
    anchors = len(engine.constraints)
    old = engine.get_collection("autoAxisXTicks")

    backend.set_view(xlim=(0.0, 100.0))
    engine.update()

    new = engine.get_collection("autoAxisXTicks")
    assert len(engine.constraints) == anchors
    assert not any(backend.exists(tick) for tick in old)
    assert [tick.xdata[0] for tick in new] == pytest.approx(list(backend.ticks(True)))
    assert engine.get_collection("autoAxisXBridge")[0].ydata == pytest.approx([-0.2, -0.2])
    label = engine.get_collection("xLabel")[0]
    assert label.text == "Time"
    lowest = min(backend.query_native_geometry(e).ymin for e in engine.get_collection("belowX"))
    assert _top(backend, label) == pytest.approx(lowest - 0.1)


def test_auto_axis_install_is_idempotent_and_removable():
    backend, engine = _engine()
    hook = install_auto_axis(engine, "y")

    assert install_auto_axis(engine, "y") is hook
    assert engine.pre_update_hooks == (hook,)
    assert remove_auto_axis(engine, "y")
    assert not remove_auto_axis(engine, "y")
    assert backend.elements() == ()


def test_auto_scale_bar_uses_the_last_tick_interval():
    backend, engine = _engine()
    install_auto_scale_bar(engine, "x")
    engine.update()

    ticks = backend.ticks(True)
    bar = engine.get_collection("autoScaleBarXRect")[0]
    assert bar.width == pytest.approx(ticks[-1] - ticks[-2])

    backend.set_view(xlim=(0.0, 1.0))
    engine.update()
    ticks = backend.ticks(True)
    bar = engine.get_collection("autoScaleBarXRect")[0]
    assert bar.width == pytest.approx(ticks[-1] - ticks[-2])
    assert bar.x + bar.width == pytest.approx(1.0 + 0.25 * 0.1)
    assert remove_auto_scale_bar(engine, "x")


def test_clear_axis_removes_one_side():
    backend, engine = _engine()
    add_tick_bridge(engine, "x", ticks=[0.0, 10.0])
    add_x_label(engine, "x")
    y_side = add_tick_bridge(engine, "y", ticks=[0.0, 10.0])

    clear_axis(engine, "x")

    assert engine.get_collection("belowX") == ()
    assert engine.get_collection("xLabel") == ()
    assert set(backend.elements()) == set(y_side)


def test_reset_removes_generated_annotations():
    backend, engine = _engine()
    install_auto_axis(engine, "x")
    add_marker_x(engine, 2.0, "m")
    add_title(engine, "kept")
    engine.update()

    reset(engine)

    assert engine.pre_update_hooks == ()
    remaining = backend.elements()
    assert len(remaining) == 1 and remaining[0].text == "kept"
    assert engine.get_collection("generated") == ()
    assert np.isfinite(_top(backend, remaining[0]))

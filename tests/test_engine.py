import logging

import pytest

from axanchor.anchors import make_anchor
from axanchor.backend import SceneBackend
from axanchor.config import LayoutConfig, UnknownPropertyError
from axanchor.engine import LayoutEngine, build_engine
from axanchor.geometry import FrameView
from axanchor.positions import PositionAttribute as P


def _engine(**view_kwargs):
    # 1 native unit per cm along x, 2 along y
    params = dict(xlim=(0.0, 10.0), ylim=(0.0, 10.0), width=10.0, height=5.0)
    params.update(view_kwargs)
    backend = SceneBackend(FrameView(**params))
    return backend, LayoutEngine(backend, LayoutConfig())


def _box(backend, element):
    return backend.query_native_geometry(element).as_tuple()


def test_absolute_height_is_converted_to_native():
    backend, engine = _engine()
    rect = backend.create_rect(1.0, 1.0, 1.0, 1.0)
    engine.anchor(rect, P.HEIGHT, margin=0.1)

    report = engine.update()

    assert report.ran and report.applied == 1
    assert rect.height == pytest.approx(0.2)
    assert rect.y + rect.height == pytest.approx(2.0)


def test_collection_group_follows_reference_bottom():
    backend, engine = _engine()
    members = [
        backend.create_rect(1.0, 5.0, 1.0, 1.0),
        backend.create_rect(3.0, 4.0, 1.0, 1.5),
        backend.create_rect(5.0, 3.0, 1.0, 0.5),
    ]
    engine.add_to_collection("belowX", members)
    engine.anchor("belowX", P.TOP, backend.frame, P.BOTTOM, 0.1)

    engine.update()
    before = [rect.y for rect in members]

    assert engine.cache.aggregate(members, P.TOP) == pytest.approx(-0.2)
    assert [b - a for a, b in zip(before, before[1:])] == pytest.approx([-1.0, -1.0])

    backend.set_view(ylim=(1.0, 11.0))
    engine.update()

    assert [rect.y - old for rect, old in zip(members, before)] == pytest.approx([1.0, 1.0, 1.0])


def test_destroyed_target_is_pruned_after_a_pass():
    backend, engine = _engine()
    doomed = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    kept = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    spec = engine.anchor(doomed, P.HEIGHT, margin=0.1)
    engine.anchor(kept, P.HEIGHT, margin=0.1)
    engine.update()

    backend.delete([doomed])
    report = engine.update()

    assert report.pruned == [spec]
    assert not spec.valid
    assert engine.constraints[0].valid
    assert len(engine.constraints) == 1
    assert engine.order == [0]
    assert kept.height == pytest.approx(0.2)


def test_destroyed_collection_member_only_leaves_the_collection():
    backend, engine = _engine()
    a = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    b = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    engine.add_to_collection("belowX", [a, b])
    engine.anchor("belowX", P.TOP, backend.frame, P.BOTTOM)

    backend.delete([a])
    report = engine.update()

    assert report.pruned == []
    assert engine.get_collection("belowX") == (b,)
    assert b.y + b.height == pytest.approx(0.0)


def test_empty_collection_is_skipped():
    backend, engine = _engine()
    engine.anchor("leftY", P.RIGHT, backend.frame, P.LEFT, 0.1)

    report = engine.update()

    assert report.skipped == 1
    assert report.applied == 0
    assert len(engine.constraints) == 1


def test_update_is_idempotent():
    backend, engine = _engine()
    tick = backend.create_line([2.0, 2.0], [1.0, 0.0])
    label = backend.create_text(2.0, 0.0, "2", valign="top")
    engine.anchor(tick, P.HEIGHT, margin="tick_length")
    engine.anchor(tick, P.TOP, backend.frame, P.BOTTOM, "axis_padding_bottom")
    engine.anchor(label, P.TOP, tick, P.BOTTOM, "tick_label_offset")
    engine.update()
    first = _box(backend, tick) + _box(backend, label)

    engine.update()

    assert _box(backend, tick) + _box(backend, label) == pytest.approx(first)
    assert first[:4] == pytest.approx((2.0, -0.3, 2.0, -0.2))
    assert first[7] == pytest.approx(-0.5)


def test_order_respects_dependencies_regardless_of_registration():
    backend, engine = _engine()
    tick = backend.create_line([2.0, 2.0], [1.0, 0.0])
    label = backend.create_text(2.0, 0.0, "2", valign="top")
    engine.anchor(label, P.TOP, tick, P.BOTTOM, "tick_label_offset")
    engine.anchor(tick, P.TOP, backend.frame, P.BOTTOM, "axis_padding_bottom")
    engine.anchor(tick, P.HEIGHT, margin="tick_length")

    report = engine.update()

    assert report.order == [2, 1, 0]
    assert backend.query_native_geometry(label).ymax == pytest.approx(-0.5)


def test_named_and_computed_margins():
    backend, engine = _engine()
    a = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    b = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    engine.anchor(a, P.LEFT, backend.frame, P.RIGHT, "axis_padding_right")
    engine.anchor(b, P.WIDTH, margin=lambda cfg: cfg.tick_length * 10)

    engine.update()

    assert a.x == pytest.approx(10.1)
    assert b.width == pytest.approx(0.5)


def test_unknown_named_property_is_rejected_at_registration():
    backend, engine = _engine()
    rect = backend.create_rect(0.0, 0.0, 1.0, 1.0)

    with pytest.raises(UnknownPropertyError):
        engine.anchor(rect, P.HEIGHT, margin="no_such_gap")
    assert engine.constraints == ()


@pytest.mark.parametrize("key", ["axis_padding", "units"])
def test_non_numeric_property_is_rejected_and_layout_keeps_working(key):
    backend, engine = _engine()
    rect = backend.create_rect(1.0, 1.0, 1.0, 1.0)
    other = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    engine.anchor(rect, P.HEIGHT, margin=0.1)

    with pytest.raises(UnknownPropertyError):
        engine.anchor(other, P.TOP, backend.frame, P.BOTTOM, key)
    assert len(engine.constraints) == 1

    assert engine.update().applied == 1
    assert rect.height == pytest.approx(0.2)


def test_center_anchors_ignore_the_margin():
    backend, engine = _engine()
    rect = backend.create_rect(0.0, 0.0, 2.0, 2.0)
    engine.anchor(rect, P.HCENTER, backend.frame, P.HCENTER, 0.5)
    engine.anchor(rect, P.VCENTER, backend.frame, P.VCENTER, 0.5)

    engine.update()

    assert backend.query_native_geometry(rect).center == pytest.approx((5.0, 5.0))


def test_literal_anchor_uses_native_value_plus_margin():
    backend, engine = _engine()
    text = backend.create_text(0.0, 0.0, "peak")
    engine.anchor(text, P.LEFT, 3.0, P.LITERAL, 0.5)

    engine.update()

    assert backend.query_native_geometry(text).xmin == pytest.approx(3.5)


def test_reversed_axis_puts_bottom_annotations_past_the_visual_bottom():
    backend, engine = _engine(y_reversed=True)
    rect = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    engine.anchor(rect, P.TOP, backend.frame, P.BOTTOM, 0.1)

    engine.update()

    assert (rect.y, rect.y + rect.height) == pytest.approx((10.2, 11.2))


def test_group_marker_diameter():
    backend, engine = _engine()
    markers = [backend.create_marker(1.0, 1.0, size=3.0), backend.create_marker(4.0, 1.0, size=9.0)]
    engine.anchor(markers, P.MARKER_DIAMETER, margin=0.2)

    engine.update()

    assert [m.size for m in markers] == pytest.approx([0.2 / 2.54 * 72.0] * 2)


def test_group_height_keeps_center_and_proportions():
    backend, engine = _engine()
    a = backend.create_rect(0.0, 0.0, 1.0, 2.0)
    b = backend.create_rect(2.0, 2.0, 1.0, 2.0)
    engine.anchor([a, b], P.HEIGHT, margin=1.0)

    engine.update()

    assert engine.cache.aggregate([a, b], P.VCENTER) == pytest.approx(2.0)
    assert (a.height, b.height) == pytest.approx((1.0, 1.0))


def test_cycle_reports_one_warning_and_terminates(caplog):
    backend, engine = _engine()
    a = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    b = backend.create_rect(0.0, 5.0, 1.0, 1.0)
    engine.anchor(a, P.TOP, b, P.BOTTOM, description="a under b")
    engine.anchor(b, P.TOP, a, P.BOTTOM, description="b under a")

    with caplog.at_level(logging.WARNING, logger="axanchor.engine"):
        report = engine.update()
        second = engine.update()

    assert report.ran and report.applied == 2
    assert len(report.warnings) == 1
    assert "a under b" in report.warnings[0]
    assert second.warnings == []
    assert engine.diagnostics == report.warnings
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1


def test_nested_update_is_dropped():
    backend, engine = _engine()
    nested = []
    engine.add_pre_update_hook(lambda eng: nested.append(eng.update()))

    report = engine.update()

    assert report.ran
    assert [r.ran for r in nested] == [False]
    assert not engine.is_updating


def test_hook_output_is_laid_out_in_the_same_pass():
    backend, engine = _engine()
    engine.anchor("belowX", P.TOP, backend.frame, P.BOTTOM)
    created = []

    def hook(eng):
        rect = backend.create_rect(0.0, 5.0, 1.0, 1.0)
        eng.add_to_collection("belowX", [rect])
        created.append(rect)

    engine.add_pre_update_hook(hook)
    engine.update()

    assert created[0].y + created[0].height == pytest.approx(0.0)
    engine.remove_pre_update_hook(hook)
    assert engine.pre_update_hooks == ()


def test_remove_elements_cascades():
    backend, engine = _engine()
    a = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    b = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    c = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    only_a = engine.anchor(a, P.HEIGHT, margin=0.1)
    engine.anchor([a, b], P.TOP, c, P.BOTTOM)
    engine.add_to_collection("belowX", [a, c])
    engine.update()

    removed = engine.remove_elements([a])

    assert removed == [only_a]
    assert len(engine.constraints) == 1
    assert engine.constraints[0].target.items == (b,)
    assert not only_a.valid and engine.constraints[0].valid
    assert engine.get_collection("belowX") == (c,)
    assert engine.update().applied == 1


def test_dead_frame_makes_update_a_no_op():
    backend, engine = _engine()
    rect = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    engine.anchor(rect, P.HEIGHT, margin=0.1)

    backend.close()

    assert not engine.update().ran
    assert not engine.update_if_changed().ran


def test_update_if_changed_and_callbacks():
    backend, engine = _engine()
    rect = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    engine.anchor(rect, P.TOP, backend.frame, P.BOTTOM)
    engine.update()

    assert not engine.update_if_changed().ran
    assert engine.install_callbacks()
    backend.set_view(ylim=(-4.0, 6.0))

    assert rect.y + rect.height == pytest.approx(-4.0)
    assert not engine.limits_changed()


def test_reset_forgets_everything():
    backend, engine = _engine()
    rect = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    engine.anchor(rect, P.HEIGHT, margin=0.1)
    engine.add_to_collection("belowX", [rect])
    engine.add_pre_update_hook(lambda eng: None)
    engine.update()

    engine.reset()

    assert engine.constraints == ()
    assert engine.get_collection("belowX") == ()
    assert engine.pre_update_hooks == ()
    assert len(engine.cache) == 0


def test_build_engine_registers_records():
    backend = SceneBackend(FrameView(xlim=(0.0, 1.0), ylim=(0.0, 1.0), width=1.0, height=1.0))
    rect = backend.create_rect(0.0, 0.0, 1.0, 1.0)

    engine = build_engine(backend, [make_anchor(rect, P.WIDTH, margin=0.5)])

    assert len(engine.constraints) == 1
    engine.update()
    assert rect.width == pytest.approx(0.5)


def test_top_layer_is_raised_after_each_pass():
    backend, engine = _engine()
    front = backend.create_rect(0.0, 0.0, 1.0, 1.0)
    engine.add_to_collection("topLayer", [front])
    later = backend.create_rect(0.0, 0.0, 1.0, 1.0)

    engine.update()

    assert backend.elements() == (later, front)

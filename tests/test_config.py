import json

import pytest

from axanchor.config import (
    LayoutConfig,
    UnknownPropertyError,
    get_default_config,
    load_config,
    set_default_config,
)


def test_side_accessors_read_and_write_tuples():
    cfg = LayoutConfig(axis_padding=(0.1, 0.2, 0.3, 0.4))

    assert cfg.axis_padding_left == pytest.approx(0.1)
    assert cfg.axis_padding_bottom == pytest.approx(0.2)
    assert cfg.axis_padding_top == pytest.approx(0.4)

    cfg.axis_padding_right = 1.5
    assert cfg.axis_padding == (0.1, 0.2, 1.5, 0.4)


def test_scalar_side_value_is_broadcast():
    cfg = LayoutConfig(axis_label_offset=0.7)

    assert cfg.axis_label_offset == (0.7, 0.7, 0.7, 0.7)


def test_wrong_side_count_is_rejected():
    with pytest.raises(ValueError):
        LayoutConfig(axis_margin=(1.0, 2.0))


def test_lookup_named_properties():
    cfg = LayoutConfig(extra={"gap": 0.3})

    assert cfg.lookup("tick_length") == pytest.approx(cfg.tick_length)
    assert cfg.lookup("decoration_label_offset_bottom") == pytest.approx(cfg.decoration_label_offset[1])
    assert cfg.lookup("gap") == pytest.approx(0.3)
    assert cfg.has_property("gap") and cfg.has_property("tick_length")
    assert not cfg.has_property("_SIDE_INDEX")


@pytest.mark.parametrize("key", ["missing", "x_units", "debug", "_private", "axis_padding", "units", "extra"])
def test_lookup_rejects_unknown_or_non_numeric(key):
    cfg = LayoutConfig()
    with pytest.raises(UnknownPropertyError):
        cfg.lookup(key)
    assert not cfg.has_property(key)


def test_derived_font_metrics():
    cfg = LayoutConfig(tick_font_size=72.0 / 1.2)

    assert cfg.tick_font_height == pytest.approx(2.54)
    assert cfg.points_to_units(72.0) == pytest.approx(2.54)


def test_default_config_is_copied():
    original = get_default_config()
    try:
        changed = get_default_config()
        changed.tick_length = 1.0
        assert get_default_config().tick_length == pytest.approx(original.tick_length)

        set_default_config(changed)
        changed.tick_length = 2.0
        assert get_default_config().tick_length == pytest.approx(1.0)
    finally:
        set_default_config(original)


def test_load_config_merges_overrides(tmp_path):
    path = tmp_path / "layout.json"
    path.write_text(json.dumps({"tick_length": 0.2, "axis_padding": [0.0, 0.3, 0.0, 0.0]}), encoding="utf-8")

    cfg = load_config(path)

    assert cfg.tick_length == pytest.approx(0.2)
    assert cfg.axis_padding_bottom == pytest.approx(0.3)
    assert cfg.marker_diameter == pytest.approx(LayoutConfig().marker_diameter)


def test_load_config_rejects_unknown_keys(tmp_path):
    path = tmp_path / "layout.json"
    path.write_text(json.dumps({"tick_lenght": 0.2}), encoding="utf-8")

    with pytest.raises(ValueError, match="tick_lenght"):
        load_config(path)


def test_load_config_requires_an_object(tmp_path):
    path = tmp_path / "layout.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)


def test_unknown_units_are_rejected():
    with pytest.raises(ValueError):
        LayoutConfig(units="parsecs")

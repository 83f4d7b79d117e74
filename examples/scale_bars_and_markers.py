"""Example: scale bars, event markers and intervals below a trace."""

from axanchor import (
    FrameView,
    LayoutConfig,
    LayoutEngine,
    SceneBackend,
    add_colored_labels,
    add_interval_x,
    add_marker_x,
    install_auto_scale_bar,
)
from axanchor.render import render_scene


def main() -> None:
    config = LayoutConfig(x_units="ms", y_units="mV")
    backend = SceneBackend(FrameView(xlim=(0.0, 500.0), ylim=(-60.0, 20.0), width=10.0, height=6.0))
    engine = LayoutEngine(backend, config)

    install_auto_scale_bar(engine, "x")
    install_auto_scale_bar(engine, "y")
    add_marker_x(engine, 100.0, "cue", interval=(80.0, 120.0))
    add_marker_x(engine, 300.0, "go")
    add_interval_x(engine, (320.0, 420.0), "response")
    add_colored_labels(engine, ["control", "drug"])

    report = engine.update()
    print(f"Applied {report.applied} anchors in order {report.order}")
    for element in backend.elements():
        box = backend.query_native_geometry(element)
        print(f"{element}: x=[{box.xmin:.2f}, {box.xmax:.2f}] y=[{box.ymin:.2f}, {box.ymax:.2f}]")

    out = render_scene(backend, "scale_bars_and_markers.png", config)
    print(f"Preview written to {out}")


if __name__ == "__main__":
    main()

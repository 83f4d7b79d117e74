"""Example: auto tick bridges that follow the view through a zoom."""

from axanchor import FrameRegistry, FrameView, SceneBackend, add_title, install_auto_axis


def main() -> None:
    backend = SceneBackend(FrameView(xlim=(0.0, 10.0), ylim=(-1.0, 1.0), width=8.0, height=5.0))
    registry = FrameRegistry()
    engine = registry.engine_for(backend)

    install_auto_axis(engine, "x", label="Time (s)")
    install_auto_axis(engine, "y", label="Voltage (mV)")
    add_title(engine, "Auto axes")
    engine.install_callbacks()
    engine.update()

    for xlim in [(0.0, 10.0), (2.0, 3.0), (0.0, 250.0)]:
        backend.set_view(xlim=xlim)
        ticks = engine.get_collection("autoAxisXTickLabels")
        print(f"xlim={xlim}: {[label.text for label in ticks]}")
        bridge = engine.get_collection("autoAxisXBridge")[0]
        print(f"  bridge y={bridge.ydata[0]:.4f}, anchors={len(engine.constraints)}")


if __name__ == "__main__":
    main()

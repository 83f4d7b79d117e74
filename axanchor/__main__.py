import argparse
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from axanchor import (
    FrameRegistry,
    FrameView,
    SceneBackend,
    add_interval_x,
    add_marker_x,
    add_title,
    add_x_label,
    add_y_label,
    get_default_config,
    install_auto_axis,
    install_auto_scale_bar,
    load_config,
)
from axanchor.render import render_scene

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _parse_pair(value: str) -> Tuple[float, float]:
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"expected two comma-separated numbers, got {value!r}")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected numbers, got {value!r}") from None


def _parse_marker(value: str) -> Tuple[float, str]:
    x, _, label = value.partition(":")
    try:
        return float(x), label
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected X[:LABEL], got {value!r}") from None


def _parse_interval(value: str) -> Tuple[float, float, str]:
    parts = value.split(":", 2)
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(f"expected LO:HI[:LABEL], got {value!r}")
    try:
        lo, hi = float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected LO:HI[:LABEL], got {value!r}") from None
    return lo, hi, parts[2] if len(parts) == 3 else ""


def _format_box(backend: SceneBackend, element) -> str:
    box = backend.query_native_geometry(element)
    return f"{element}: x=[{box.xmin:.4g}, {box.xmax:.4g}] y=[{box.ymin:.4g}, {box.ymax:.4g}]"


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Lay out annotations around a demo frame")
    parser.add_argument(
        "--mode",
        choices=["axes", "scalebars"],
        default="axes",
        help="Decorate with auto tick bridges or auto scale bars (default: axes)",
    )
    parser.add_argument("--xlim", type=_parse_pair, default=(0.0, 10.0), help="x limits, e.g. 0,10")
    parser.add_argument("--ylim", type=_parse_pair, default=(0.0, 1.0), help="y limits, e.g. 0,1")
    parser.add_argument(
        "--size",
        type=_parse_pair,
        default=(8.0, 6.0),
        help="Frame width,height in centimeters (default: 8,6)",
    )
    parser.add_argument("--title", help="Title above the frame")
    parser.add_argument("--xlabel", help="Label below the x decorations")
    parser.add_argument("--ylabel", help="Label left of the y decorations")
    parser.add_argument(
        "--marker",
        type=_parse_marker,
        action="append",
        default=[],
        help="Marker below the frame as X[:LABEL]; may repeat",
    )
    parser.add_argument(
        "--interval",
        type=_parse_interval,
        action="append",
        default=[],
        help="Interval bar below the frame as LO:HI[:LABEL]; may repeat",
    )
    parser.add_argument("--zoom", type=_parse_pair, help="Change x limits after the first layout pass")
    parser.add_argument("--config", help="JSON file of layout property overrides")
    parser.add_argument("--png", help="Write a matplotlib preview to the given path")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    config = load_config(args.config) if args.config else get_default_config()
    try:
        view = FrameView(xlim=args.xlim, ylim=args.ylim, width=args.size[0], height=args.size[1])
    except ValueError as exc:
        logger.error("Invalid frame: %s", exc)
        raise SystemExit(2)

    backend = SceneBackend(view)
    registry = FrameRegistry()
    engine = registry.engine_for(backend, config)

    if args.mode == "axes":
        install_auto_axis(engine, "x", label=args.xlabel)
        install_auto_axis(engine, "y", label=args.ylabel)
    else:
        install_auto_scale_bar(engine, "x")
        install_auto_scale_bar(engine, "y")
        if args.xlabel:
            add_x_label(engine, args.xlabel)
        if args.ylabel:
            add_y_label(engine, args.ylabel)
    if args.title:
        add_title(engine, args.title)
    for x, label in args.marker:
        add_marker_x(engine, x, label)
    for lo, hi, label in args.interval:
        add_interval_x(engine, (lo, hi), label)

    engine.install_callbacks()
    report = engine.update()
    logger.info("Layout pass applied %d anchor(s) in order %s", report.applied, report.order)
    if args.zoom:
        logger.info("Zooming x to %s", args.zoom)
        backend.set_view(xlim=args.zoom)

    print(f"Frame: xlim={backend.frame_view().xlim} ylim={backend.frame_view().ylim}")
    print(f"Anchors: {len(engine.constraints)}")
    print("Elements:")
    for element in backend.elements():
        print(f"  {_format_box(backend, element)}")
    notes: List[str] = list(engine.diagnostics)
    print("Diagnostics:")
    if notes:
        for note in notes:
            print(f"  - {note}")
    else:
        print("  (none)")

    if args.png:
        out = render_scene(backend, args.png, config)
        print(f"Preview written to {out}")


if __name__ == "__main__":
    main(sys.argv[1:])

"""PNG preview of a :class:`SceneBackend` through matplotlib."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.patches import Rectangle  # noqa: E402

from .backend import LineElement, MarkerElement, RectElement, SceneBackend, TextElement  # noqa: E402
from .config import LayoutConfig, get_default_config  # noqa: E402
from .units import CM_PER_INCH, units_per_cm  # noqa: E402

logger = logging.getLogger(__name__)

_MPL_VALIGN = {"middle": "center", "cap": "top"}


def render_scene(
    backend: SceneBackend,
    path: Union[str, Path],
    config: Optional[LayoutConfig] = None,
    show_boxes: Optional[bool] = None,
) -> Path:
    """Draw the frame and every live primitive to ``path``.

    The figure is the frame plus ``config.axis_margin`` on each side, so
    decorations placed outside the frame stay visible.  ``show_boxes``
    (default: ``config.debug``) outlines each element's bounding box.
    """

    cfg = config if config is not None else get_default_config()
    boxes = cfg.debug if show_boxes is None else show_boxes
    view = backend.frame_view()
    to_cm = 1.0 / units_per_cm(cfg.units)
    left, bottom, right, top = (side * to_cm for side in cfg.axis_margin)
    fig_w = view.width + left + right
    fig_h = view.height + bottom + top

    fig = plt.figure(figsize=(fig_w / CM_PER_INCH, fig_h / CM_PER_INCH), dpi=view.dpi)
    ax = fig.add_axes((left / fig_w, bottom / fig_h, view.width / fig_w, view.height / fig_h))
    ax.set_xlim(*view.xlim)
    ax.set_ylim(*view.ylim)
    if view.x_reversed:
        ax.invert_xaxis()
    if view.y_reversed:
        ax.invert_yaxis()
    ax.set_xticks([])
    ax.set_yticks([])

    for item in backend.elements():
        if isinstance(item, LineElement):
            ax.plot(
                item.xdata, item.ydata, color=item.color, linewidth=item.line_width,
                solid_capstyle="butt", clip_on=False,
            )
        elif isinstance(item, RectElement):
            ax.add_patch(
                Rectangle((item.x, item.y), item.width, item.height, facecolor=item.color, edgecolor="none", clip_on=False)
            )
        elif isinstance(item, TextElement):
            ax.text(
                item.x, item.y, item.text, fontsize=item.font_size, color=item.color,
                ha=item.halign, va=_MPL_VALIGN.get(item.valign, item.valign),
                rotation=item.rotation, rotation_mode="anchor", clip_on=False,
            )
        elif isinstance(item, MarkerElement):
            ax.plot(
                [item.x], [item.y], marker=item.marker, markersize=item.size, color=item.color,
                linestyle="none", clip_on=False,
            )
        if boxes:
            box = backend.query_native_geometry(item)
            ax.add_patch(
                Rectangle(
                    (box.xmin, box.ymin), box.width, box.height,
                    fill=False, edgecolor="red", linewidth=0.3, clip_on=False,
                )
            )

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out)
    plt.close(fig)
    logger.info("Wrote preview of %d element(s) to %s", len(backend.elements()), out)
    return out


__all__ = ["render_scene"]

"""Per-frame constraint engine.

One :class:`LayoutEngine` owns the anchors registered against a single
reference frame.  Every :meth:`LayoutEngine.update` pass re-reads the view,
dereferences collections and margins, orders the anchors so that producers
run before consumers, and writes each target's new geometry through the
location cache to the rendering backend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .anchors import (
    AnchorSpec,
    Collection,
    Elements,
    LiteralValue,
    MarginLike,
    NamedProperty,
    RefLike,
    make_anchor,
    resolve_margin,
)
from .backend import RenderingBackend
from .config import LayoutConfig, UnknownPropertyError, get_default_config
from .geometry import FrameView
from .handles import Element, ElementCollections, unique_elements
from .location import LocationCache
from .logging_utils import apply_debug_logging
from .positions import PositionAttribute
from .scheduler import Schedule, ScheduleNode, schedule_anchors
from .units import UnitConverter

logger = logging.getLogger(__name__)

P = PositionAttribute

TOP_LAYER = "topLayer"

PreUpdateHook = Callable[["LayoutEngine"], None]

# direction of the margin relative to the anchor attribute; centers take none
_MARGIN_SIGN = {
    P.TOP: 1.0,
    P.BOTTOM: -1.0,
    P.LEFT: -1.0,
    P.RIGHT: 1.0,
    P.LITERAL: 1.0,
}


@dataclass
class UpdateReport:
    """Outcome of one :meth:`LayoutEngine.update` call."""

    ran: bool = False
    order: List[int] = field(default_factory=list)
    applied: int = 0
    skipped: int = 0
    pruned: List[AnchorSpec] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ResolvedAnchor:
    """An anchor with its references dereferenced for the current pass."""

    spec: AnchorSpec
    targets: Tuple[Element, ...]
    anchors: Optional[Tuple[Element, ...]]
    margin: float
    stale: bool = False

    def node(self) -> ScheduleNode:
        return ScheduleNode.build(
            self.targets,
            self.spec.target_attr,
            self.anchors,
            self.spec.anchor_attr,
        )


class LayoutEngine:
    """Anchor registry and resolution pass for one reference frame."""

    def __init__(self, backend: RenderingBackend, config: Optional[LayoutConfig] = None) -> None:
        self.backend = backend
        self.config = config if config is not None else get_default_config()
        self.converter = UnitConverter(units=self.config.units)
        self.collections = ElementCollections()
        self.cache = LocationCache(backend, self.converter)
        self.diagnostics: List[str] = []

        self._specs: List[AnchorSpec] = []
        self._schedule: Optional[Schedule] = None
        self._dirty = True
        self._updating = False
        self._hooks: List[PreUpdateHook] = []
        self._last_view: Optional[FrameView] = None
        self._callbacks_installed = False

    # -- registration --------------------------------------------------------
    def add_constraint(self, spec: AnchorSpec) -> AnchorSpec:
        if isinstance(spec.margin, NamedProperty) and not self.config.has_property(spec.margin.key):
            raise UnknownPropertyError(spec.margin.key)
        self._specs.append(spec)
        self._dirty = True
        logger.debug("Registered anchor %d: %s", len(self._specs) - 1, spec)
        return spec

    def anchor(
        self,
        target: RefLike,
        target_attr,
        anchor=None,
        anchor_attr=None,
        margin: MarginLike = None,
        description: str = "",
    ) -> AnchorSpec:
        """Build and register an anchor from loosely typed arguments."""

        return self.add_constraint(
            make_anchor(target, target_attr, anchor, anchor_attr, margin, description)
        )

    def add_to_collection(self, name: str, elements: Iterable[Element]) -> None:
        self.collections.add(name, elements)
        self._dirty = True

    def get_collection(self, name: str) -> Tuple[Element, ...]:
        return self.collections.get(name)

    def remove_elements(self, elements: Iterable[Element]) -> List[AnchorSpec]:
        """Forget ``elements`` everywhere; return the anchors that emptied out.

        Elements are stripped from every collection and from the explicit
        target and anchor sets of every anchor.  Anchors left without targets
        or without anchors are removed in the same call.
        """

        doomed = unique_elements(elements)
        if not doomed:
            return []
        self.collections.remove(doomed)

        kept: List[AnchorSpec] = []
        removed: List[AnchorSpec] = []
        removed_indices: List[int] = []
        for index, spec in enumerate(self._specs):
            trimmed = spec.without_elements(doomed)
            if trimmed is None:
                spec.valid = False
                removed.append(spec)
                removed_indices.append(index)
            else:
                kept.append(trimmed)
        self._specs = kept
        if self._schedule is not None:
            self._schedule = self._schedule.without(removed_indices)
        self._dirty = True
        if removed:
            logger.debug("Removing %d element(s) dropped %d anchor(s)", len(doomed), len(removed))
        return removed

    def add_pre_update_hook(self, hook: PreUpdateHook) -> None:
        if hook not in self._hooks:
            self._hooks.append(hook)

    def remove_pre_update_hook(self, hook: PreUpdateHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    @property
    def pre_update_hooks(self) -> Tuple[PreUpdateHook, ...]:
        return tuple(self._hooks)

    def add_diagnostic(self, message: str) -> None:
        self.diagnostics.append(message)

    # -- introspection -------------------------------------------------------
    @property
    def constraints(self) -> Tuple[AnchorSpec, ...]:
        return tuple(self._specs)

    @property
    def order(self) -> List[int]:
        """Evaluation order as indices into :attr:`constraints`."""

        if self._schedule is None or self._dirty:
            return list(range(len(self._specs)))
        return list(self._schedule.order)

    @property
    def schedule(self) -> Optional[Schedule]:
        return self._schedule

    @property
    def is_updating(self) -> bool:
        return self._updating

    # -- update --------------------------------------------------------------
    def limits_changed(self) -> bool:
        return self.backend.frame_view() != self._last_view

    def update_if_changed(self) -> UpdateReport:
        if not self.backend.frame_exists() or not self.limits_changed():
            return UpdateReport(ran=False)
        return self.update()

    def update(self) -> UpdateReport:
        """Run one layout pass; nested calls during a pass return ``ran=False``."""

        if self._updating:
            return UpdateReport(ran=False)
        if not self.backend.frame_exists():
            logger.debug("Frame is gone; skipping layout pass")
            return UpdateReport(ran=False)

        self._updating = True
        try:
            return self._run_pass()
        finally:
            self._updating = False

    def _run_pass(self) -> UpdateReport:
        report = UpdateReport(ran=True)

        for hook in list(self._hooks):
            hook(self)

        view = self.backend.frame_view()
        self.converter.refresh(view)
        self.collections.prune(self.backend.exists)
        resolved = [self._dereference(spec) for spec in self._specs]

        if self._dirty or self._schedule is None or len(self._schedule.order) != len(resolved):
            self._schedule = schedule_anchors([item.node() for item in resolved])
            self._dirty = False
            if self._schedule.cyclic:
                message = (
                    "Cyclic anchor dependencies; best-effort order forced at "
                    + ", ".join(repr(str(resolved[i].spec)) for i in self._schedule.forced)
                )
                logger.warning("%s", message)
                report.warnings.append(message)
        report.order = list(self._schedule.order)

        referenced: List[Element] = []
        for item in resolved:
            if item.stale:
                continue
            referenced.extend(item.targets)
            if item.anchors:
                referenced.extend(item.anchors)
        self.cache.sync(referenced)

        invalid: List[int] = []
        for index in self._schedule.order:
            item = resolved[index]
            if item.stale:
                item.spec.valid = False
                invalid.append(index)
                continue
            if not item.targets or (item.anchors is not None and not item.anchors):
                report.skipped += 1
                continue
            self._apply(item)
            report.applied += 1

        if invalid:
            gone = set(invalid)
            report.pruned = [self._specs[i] for i in sorted(gone)]
            self._specs = [spec for i, spec in enumerate(self._specs) if i not in gone]
            self._schedule = self._schedule.without(gone)
            for spec in report.pruned:
                logger.debug("Pruned anchor with destroyed elements: %s", spec)

        self._raise_top_layer()
        self._last_view = view
        self.diagnostics.extend(report.warnings)
        logger.debug(
            "Layout pass applied=%d skipped=%d pruned=%d",
            report.applied,
            report.skipped,
            len(report.pruned),
        )
        return report

    def _dereference(self, spec: AnchorSpec) -> ResolvedAnchor:
        exists = self.backend.exists
        stale = False

        if isinstance(spec.target, Collection):
            targets = self.collections.get(spec.target.name)
        else:
            targets = spec.target.items
            stale = not all(exists(element) for element in targets)

        anchors: Optional[Tuple[Element, ...]] = None
        if isinstance(spec.anchor, Collection):
            anchors = self.collections.get(spec.anchor.name)
        elif isinstance(spec.anchor, Elements):
            anchors = spec.anchor.items
            stale = stale or not all(exists(element) for element in anchors)

        margin = resolve_margin(spec.margin, self.config)
        return ResolvedAnchor(spec=spec, targets=targets, anchors=anchors, margin=margin, stale=stale)

    def _anchor_value(self, item: ResolvedAnchor) -> float:
        spec = item.spec
        conv = self.converter
        if spec.anchor is None:
            return conv.to_native(item.margin, spec.target_attr.is_horizontal())

        if isinstance(spec.anchor, LiteralValue):
            value = spec.anchor.value
            horizontal = spec.target_attr.is_horizontal()
        else:
            value = self.cache.aggregate(item.anchors, spec.anchor_attr)
            horizontal = spec.anchor_attr.is_horizontal()

        sign = _MARGIN_SIGN.get(spec.anchor_attr, 0.0)
        if sign and item.margin:
            value += sign * conv.direction(horizontal) * conv.to_native(item.margin, horizontal)
        return value

    def _apply(self, item: ResolvedAnchor) -> None:
        value = self._anchor_value(item)
        targets = item.targets
        if len(targets) == 1:
            self.cache.write(targets[0], item.spec.target_attr, value)
        else:
            self.cache.write_group(targets, item.spec.target_attr, value)

    def _raise_top_layer(self) -> None:
        top = [element for element in self.collections.get(TOP_LAYER) if self.backend.exists(element)]
        if top:
            self.backend.bring_to_front(top)

    # -- wiring --------------------------------------------------------------
    def install_callbacks(self) -> bool:
        """Re-run layout whenever the backend reports a view change.

        Only backends exposing ``add_view_listener`` can notify; returns
        whether a listener was installed.
        """

        if self._callbacks_installed:
            return True
        register = getattr(self.backend, "add_view_listener", None)
        if register is None:
            logger.info("Backend %r cannot report view changes", type(self.backend).__name__)
            return False
        register(lambda _backend: self.update_if_changed())
        self._callbacks_installed = True
        return True

    def reset(self) -> None:
        """Forget every anchor, collection, cached location and hook."""

        self._specs.clear()
        self.collections.clear()
        self.cache.clear()
        self._hooks.clear()
        self._schedule = None
        self._dirty = True
        self._last_view = None
        logger.debug("Engine reset")


def build_engine(
    backend: RenderingBackend,
    anchors: Sequence[AnchorSpec] = (),
    config: Optional[LayoutConfig] = None,
) -> LayoutEngine:
    engine = LayoutEngine(backend, config)
    for spec in anchors:
        engine.add_constraint(spec)
    return engine


ConstraintEngine = LayoutEngine

apply_debug_logging(globals(), logger=logger, skip={"LayoutEngine.update", "LayoutEngine._run_pass"})


__all__ = [
    "ConstraintEngine",
    "LayoutEngine",
    "PreUpdateHook",
    "ResolvedAnchor",
    "UpdateReport",
    "build_engine",
]

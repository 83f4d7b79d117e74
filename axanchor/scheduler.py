"""Evaluation order for anchors.

Anchor *i* depends on anchor *j* when *j* writes something *i* reads:

1. *i*'s anchor elements overlap *j*'s targets and *j* sets *i*'s anchor
   attribute, directly or through the attributes that determine it
   (e.g. Bottom and Height together fix Top);
2. *i* positions elements whose size on that axis *j* sets, so sizing
   happens before positioning;
3. *j* sets the marker diameter of an element *i* positions or sizes.

The order is a topological sort of that graph.  Cycles do not abort layout:
the node with the fewest unresolved producers is taken next and the
schedule is flagged as cyclic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np

from .handles import Element
from .logging_utils import apply_debug_logging
from .positions import PositionAttribute

logger = logging.getLogger(__name__)

P = PositionAttribute

# attributes whose writes move the key attribute
_IMPLICIT: Dict[PositionAttribute, FrozenSet[PositionAttribute]] = {
    P.TOP: frozenset({P.BOTTOM, P.HEIGHT, P.VCENTER}),
    P.BOTTOM: frozenset({P.TOP, P.HEIGHT, P.VCENTER}),
    P.HEIGHT: frozenset({P.TOP, P.BOTTOM, P.VCENTER}),
    P.VCENTER: frozenset({P.TOP, P.BOTTOM, P.HEIGHT}),
    P.LEFT: frozenset({P.RIGHT, P.WIDTH, P.HCENTER}),
    P.RIGHT: frozenset({P.LEFT, P.WIDTH, P.HCENTER}),
    P.WIDTH: frozenset({P.LEFT, P.RIGHT, P.HCENTER}),
    P.HCENTER: frozenset({P.LEFT, P.RIGHT, P.WIDTH}),
}

# a size is only pinned down once two of its edges/center are constrained
_IMPLICIT_THRESHOLD: Dict[PositionAttribute, int] = {P.HEIGHT: 2, P.WIDTH: 2}


@dataclass(frozen=True)
class ScheduleNode:
    """What the scheduler needs to know about one dereferenced anchor."""

    targets: FrozenSet[Element]
    target_attr: PositionAttribute
    anchors: Optional[FrozenSet[Element]] = None
    anchor_attr: Optional[PositionAttribute] = None

    @classmethod
    def build(
        cls,
        targets: Iterable[Element],
        target_attr: PositionAttribute,
        anchors: Optional[Iterable[Element]] = None,
        anchor_attr: Optional[PositionAttribute] = None,
    ) -> "ScheduleNode":
        return cls(
            targets=frozenset(targets),
            target_attr=target_attr,
            anchors=frozenset(anchors) if anchors is not None else None,
            anchor_attr=anchor_attr,
        )


@dataclass
class Schedule:
    """A permutation of anchor indices plus the graph it was derived from."""

    order: List[int] = field(default_factory=list)
    edges: List[Tuple[int, int]] = field(default_factory=list)
    cyclic: bool = False
    forced: List[int] = field(default_factory=list)

    def without(self, removed: Iterable[int]) -> "Schedule":
        """Drop ``removed`` indices and renumber the survivors densely.

        Removing nodes never invalidates a topological order, so the
        remaining order is reused as is.
        """

        gone: Set[int] = set(removed)
        if not gone:
            return self
        survivors = sorted(i for i in self.order if i not in gone)
        renumber = {old: new for new, old in enumerate(survivors)}
        return Schedule(
            order=[renumber[i] for i in self.order if i in renumber],
            edges=[(renumber[a], renumber[b]) for a, b in self.edges if a in renumber and b in renumber],
            cyclic=self.cyclic,
            forced=[renumber[i] for i in self.forced if i in renumber],
        )

    def position(self) -> Dict[int, int]:
        return {index: rank for rank, index in enumerate(self.order)}


def find_specifying(nodes: Sequence[ScheduleNode], elements: FrozenSet[Element], attr: PositionAttribute) -> np.ndarray:
    """Mask of nodes that could determine ``attr`` of any of ``elements``."""

    overlap = np.array([bool(node.targets & elements) for node in nodes], dtype=bool)
    if not overlap.any():
        return overlap

    implicit = _IMPLICIT.get(attr, frozenset())
    present = {node.target_attr for node, hit in zip(nodes, overlap) if hit}
    use_implicit = len(present & implicit) >= _IMPLICIT_THRESHOLD.get(attr, 1)

    matches = np.array(
        [node.target_attr is attr or (use_implicit and node.target_attr in implicit) for node in nodes],
        dtype=bool,
    )
    return overlap & matches


def build_dependency_matrix(nodes: Sequence[ScheduleNode]) -> np.ndarray:
    """``deps[i, j]`` is true when node ``i`` must run after node ``j``."""

    count = len(nodes)
    deps = np.zeros((count, count), dtype=bool)
    for i, node in enumerate(nodes):
        if not node.targets:
            continue
        if node.anchors and node.anchor_attr is not None and node.anchor_attr is not P.LITERAL:
            deps[i] |= find_specifying(nodes, node.anchors, node.anchor_attr)
        if not node.target_attr.is_size():
            deps[i] |= find_specifying(nodes, node.targets, node.target_attr.size_attribute())
        if node.target_attr is not P.MARKER_DIAMETER:
            deps[i] |= find_specifying(nodes, node.targets, P.MARKER_DIAMETER)
    np.fill_diagonal(deps, False)
    return deps


def topological_order(deps: np.ndarray) -> Schedule:
    """Kahn's algorithm over ``deps`` with deterministic cycle breaking."""

    count = deps.shape[0]
    remaining = deps.copy()
    active = np.ones(count, dtype=bool)
    order: List[int] = []
    forced: List[int] = []
    unresolved_sentinel = count + 1

    for _ in range(count):
        pending = remaining.sum(axis=1)
        ready = np.flatnonzero(active & (pending == 0))
        if ready.size:
            chosen = int(ready[0])
        else:
            # fewest unresolved producers first, then registration order
            chosen = int(np.argmin(np.where(active, pending, unresolved_sentinel)))
            forced.append(chosen)
        order.append(chosen)
        remaining[:, chosen] = False
        active[chosen] = False

    edges = [(int(i), int(j)) for i, j in zip(*np.nonzero(deps))]
    schedule = Schedule(order=order, edges=edges, cyclic=bool(forced), forced=forced)
    logger.debug(
        "topological_order: nodes=%d edges=%d cyclic=%s", count, len(edges), schedule.cyclic
    )
    return schedule


def schedule_anchors(nodes: Sequence[ScheduleNode]) -> Schedule:
    if not nodes:
        return Schedule()
    return topological_order(build_dependency_matrix(nodes))


apply_debug_logging(globals(), logger=logger)


__all__ = [
    "Schedule",
    "ScheduleNode",
    "build_dependency_matrix",
    "find_specifying",
    "schedule_anchors",
    "topological_order",
]

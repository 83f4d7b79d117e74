"""Declarative anchor records tying one attribute of a target to an anchor."""

from __future__ import annotations

import numbers
from dataclasses import dataclass, replace
from typing import Callable, Hashable, Iterable, Optional, Tuple, Union

from .config import LayoutConfig
from .handles import Element, unique_elements
from .positions import PositionAttribute


class AnchorSpecError(ValueError):
    """Raised when an anchor record is internally inconsistent."""


@dataclass(frozen=True)
class Elements:
    """Explicit element handles."""

    items: Tuple[Element, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", unique_elements(self.items))

    def without(self, doomed: Iterable[Element]) -> "Elements":
        gone = set(doomed)
        if gone.isdisjoint(self.items):
            return self
        return Elements(tuple(item for item in self.items if item not in gone))


@dataclass(frozen=True)
class Collection:
    """Reference to a named collection, resolved at every update."""

    name: str


@dataclass(frozen=True)
class LiteralValue:
    """A scalar in native coordinates used in place of an anchor element."""

    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))


TargetRef = Union[Elements, Collection]
AnchorRef = Union[Elements, Collection, LiteralValue, None]


@dataclass(frozen=True)
class Constant:
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class NamedProperty:
    key: str


@dataclass(frozen=True)
class Computed:
    fn: Callable[[LayoutConfig], float]


Margin = Union[Constant, NamedProperty, Computed]


def resolve_margin(margin: Margin, config: LayoutConfig) -> float:
    """Evaluate ``margin`` to a physical-unit scalar."""

    if isinstance(margin, Constant):
        return margin.value
    if isinstance(margin, NamedProperty):
        return config.lookup(margin.key)
    return float(margin.fn(config))


@dataclass
class AnchorSpec:
    """One layout rule: ``target.target_attr = anchor.anchor_attr ± margin``.

    With ``anchor=None`` the margin itself is the value (an absolute size or
    offset in physical units).  With ``anchor_attr=LITERAL`` the anchor is a
    :class:`LiteralValue` in native coordinates.
    """

    target: TargetRef
    target_attr: PositionAttribute
    anchor: AnchorRef = None
    anchor_attr: Optional[PositionAttribute] = None
    margin: Margin = Constant(0.0)
    description: str = ""
    valid: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.target, (Elements, Collection)):
            raise AnchorSpecError(f"{self.description!r}: target must be Elements or Collection")
        if self.target_attr is PositionAttribute.LITERAL:
            raise AnchorSpecError(f"{self.description!r}: LITERAL cannot be a target attribute")
        if self.anchor is None:
            if self.anchor_attr is not None:
                raise AnchorSpecError(
                    f"{self.description!r}: anchor_attr given without an anchor"
                )
        elif isinstance(self.anchor, LiteralValue):
            if self.anchor_attr is not PositionAttribute.LITERAL:
                raise AnchorSpecError(
                    f"{self.description!r}: literal anchors require anchor_attr=LITERAL"
                )
        elif isinstance(self.anchor, (Elements, Collection)):
            if self.anchor_attr is None or self.anchor_attr is PositionAttribute.LITERAL:
                raise AnchorSpecError(
                    f"{self.description!r}: element anchors need a geometric anchor_attr"
                )
        else:
            raise AnchorSpecError(f"{self.description!r}: unsupported anchor {self.anchor!r}")
        if isinstance(self.target, Elements) and not self.target.items:
            raise AnchorSpecError(f"{self.description!r}: empty target")
        if isinstance(self.anchor, Elements) and not self.anchor.items:
            raise AnchorSpecError(f"{self.description!r}: empty anchor")

    @property
    def is_absolute(self) -> bool:
        return self.anchor is None

    @property
    def is_literal(self) -> bool:
        return isinstance(self.anchor, LiteralValue)

    def explicit_elements(self) -> Tuple[Element, ...]:
        found = []
        if isinstance(self.target, Elements):
            found.extend(self.target.items)
        if isinstance(self.anchor, Elements):
            found.extend(self.anchor.items)
        return unique_elements(found)

    def without_elements(self, doomed: Iterable[Element]) -> Optional["AnchorSpec"]:
        """Return a copy with ``doomed`` stripped, or ``None`` if it empties.

        Collection references are left alone; they are resolved per update.
        """

        gone = set(doomed)
        target = self.target
        anchor = self.anchor
        if isinstance(target, Elements):
            target = target.without(gone)
            if not target.items:
                return None
        if isinstance(anchor, Elements):
            anchor = anchor.without(gone)
            if not anchor.items:
                return None
        if target is self.target and anchor is self.anchor:
            return self
        return replace(self, target=target, anchor=anchor)

    def __str__(self) -> str:
        return self.description or repr(self)


RefLike = Union[TargetRef, str, Hashable, Iterable[Hashable]]
MarginLike = Union[Margin, float, int, str, Callable[[LayoutConfig], float], None]


def as_target(ref: RefLike) -> TargetRef:
    if isinstance(ref, (Elements, Collection)):
        return ref
    if isinstance(ref, str):
        return Collection(ref)
    if isinstance(ref, (list, tuple, set, frozenset)):
        return Elements(tuple(ref))
    return Elements((ref,))


def as_anchor(ref: Union[RefLike, float, LiteralValue, None], attr: Optional[PositionAttribute]) -> AnchorRef:
    if ref is None or isinstance(ref, LiteralValue):
        return ref
    if attr is PositionAttribute.LITERAL:
        if not isinstance(ref, numbers.Real):
            raise AnchorSpecError(f"literal anchor must be a number, got {ref!r}")
        return LiteralValue(float(ref))
    return as_target(ref)


def as_margin(margin: MarginLike) -> Margin:
    if margin is None:
        return Constant(0.0)
    if isinstance(margin, (Constant, NamedProperty, Computed)):
        return margin
    if isinstance(margin, str):
        return NamedProperty(margin)
    if isinstance(margin, numbers.Real):
        return Constant(float(margin))
    if callable(margin):
        return Computed(margin)
    raise AnchorSpecError(f"unsupported margin {margin!r}")


def make_anchor(
    target: RefLike,
    target_attr: Union[PositionAttribute, str],
    anchor: Union[RefLike, float, LiteralValue, None] = None,
    anchor_attr: Union[PositionAttribute, str, None] = None,
    margin: MarginLike = None,
    description: str = "",
) -> AnchorSpec:
    """Build an :class:`AnchorSpec` from loosely typed arguments.

    Strings name collections, other handles or sequences of handles are
    explicit elements, a number paired with ``LITERAL`` is a literal anchor;
    margins may be numbers, property names or callables of the config.
    """

    pos = PositionAttribute.coerce(target_attr)
    posa = PositionAttribute.coerce(anchor_attr) if anchor_attr is not None else None
    return AnchorSpec(
        target=as_target(target),
        target_attr=pos,
        anchor=as_anchor(anchor, posa),
        anchor_attr=posa,
        margin=as_margin(margin),
        description=description,
    )


__all__ = [
    "AnchorRef",
    "AnchorSpec",
    "AnchorSpecError",
    "Collection",
    "Computed",
    "Constant",
    "Elements",
    "LiteralValue",
    "Margin",
    "NamedProperty",
    "TargetRef",
    "as_margin",
    "make_anchor",
    "resolve_margin",
]

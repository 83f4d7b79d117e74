"""Named collections of element handles."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Hashable, Iterable, List, Tuple

logger = logging.getLogger(__name__)

Element = Hashable


def unique_elements(elements: Iterable[Element]) -> Tuple[Element, ...]:
    """Deduplicate ``elements`` by identity, keeping first-seen order."""

    return tuple(dict.fromkeys(elements))


class ElementCollections:
    """Mutable ``name -> ordered set of elements`` mapping.

    Unknown names read as empty so anchors may reference a decoration group
    before anything has been added to it.
    """

    def __init__(self) -> None:
        self._members: Dict[str, Dict[Element, None]] = {}

    def add(self, name: str, elements: Iterable[Element]) -> bool:
        """Union ``elements`` into collection ``name``; return whether it grew."""

        members = self._members.setdefault(name, {})
        before = len(members)
        for element in elements:
            members[element] = None
        grew = len(members) != before
        if grew:
            logger.debug("Collection %r now holds %d element(s)", name, len(members))
        return grew

    def get(self, name: str) -> Tuple[Element, ...]:
        return tuple(self._members.get(name, ()))

    def remove(self, elements: Iterable[Element]) -> List[str]:
        """Remove ``elements`` from every collection; return the names touched."""

        doomed = set(elements)
        touched: List[str] = []
        if not doomed:
            return touched
        for name, members in self._members.items():
            hit = [element for element in members if element in doomed]
            for element in hit:
                del members[element]
            if hit:
                touched.append(name)
        return touched

    def prune(self, exists: Callable[[Element], bool]) -> List[Element]:
        """Drop members for which ``exists`` is false; return the dropped handles."""

        dropped: Dict[Element, None] = {}
        for members in self._members.values():
            for element in [element for element in members if not exists(element)]:
                del members[element]
                dropped[element] = None
        if dropped:
            logger.debug("Pruned %d destroyed element(s) from collections", len(dropped))
        return list(dropped)

    def names(self) -> List[str]:
        return list(self._members)

    def clear(self) -> None:
        self._members.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._members

    def __len__(self) -> int:
        return len(self._members)


__all__ = ["Element", "ElementCollections", "unique_elements"]

"""Explicit frame -> engine mapping."""

from __future__ import annotations

import logging
from typing import Dict, Hashable, Iterator, List, Optional, Tuple

from .backend import RenderingBackend
from .config import LayoutConfig
from .engine import LayoutEngine, UpdateReport

logger = logging.getLogger(__name__)


class FrameRegistry:
    """Owns one :class:`LayoutEngine` per reference frame.

    Engines are created on first request and dropped by :meth:`teardown`.
    Backends that announce element destruction get an automatic teardown
    when their frame is destroyed.
    """

    def __init__(self) -> None:
        self._engines: Dict[Hashable, LayoutEngine] = {}

    def engine_for(self, backend: RenderingBackend, config: Optional[LayoutConfig] = None) -> LayoutEngine:
        key = backend.frame
        engine = self._engines.get(key)
        if engine is not None:
            return engine
        if not backend.frame_exists():
            raise ValueError(f"frame {key!r} no longer exists")

        engine = LayoutEngine(backend, config)
        self._engines[key] = engine
        watch = getattr(backend, "add_destroy_listener", None)
        if watch is not None:
            watch(lambda destroyed: self._on_destroyed(key, destroyed))
        logger.info("Created layout engine for frame %r", key)
        return engine

    def get(self, frame: Hashable) -> Optional[LayoutEngine]:
        return self._engines.get(frame)

    def teardown(self, frame_or_backend) -> bool:
        key = getattr(frame_or_backend, "frame", frame_or_backend)
        engine = self._engines.pop(key, None)
        if engine is None:
            return False
        engine.reset()
        logger.info("Tore down layout engine for frame %r", key)
        return True

    def _on_destroyed(self, key: Hashable, destroyed: Tuple[Hashable, ...]) -> None:
        if key in destroyed:
            self.teardown(key)

    def update_all(self) -> Dict[Hashable, UpdateReport]:
        """Run a layout pass on every live engine, tearing down dead frames."""

        reports: Dict[Hashable, UpdateReport] = {}
        for key, engine in list(self._engines.items()):
            if not engine.backend.frame_exists():
                self.teardown(key)
                continue
            reports[key] = engine.update()
        return reports

    def frames(self) -> List[Hashable]:
        return list(self._engines)

    def __contains__(self, frame: object) -> bool:
        return frame in self._engines

    def __iter__(self) -> Iterator[LayoutEngine]:
        return iter(list(self._engines.values()))

    def __len__(self) -> int:
        return len(self._engines)


__all__ = ["FrameRegistry"]

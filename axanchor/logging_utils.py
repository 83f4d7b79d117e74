from __future__ import annotations

import inspect
import logging
import reprlib
from functools import wraps
from typing import Any, Callable, Iterable, MutableMapping, Optional, Set, TypeVar, cast

import numpy as np

F = TypeVar("F", bound=Callable[..., Any])

_WRAPPED_FLAG = "_axanchor_debug_wrapped"

_repr = reprlib.Repr()
_repr.maxother = 120
_repr.maxstring = 80
_repr.maxlist = 6
_repr.maxtuple = 6
_repr.maxset = 6
_repr.maxdict = 6


def _summarize_array(value: np.ndarray) -> str:
    head = f"ndarray(shape={tuple(value.shape)}, dtype={value.dtype}"
    if value.size == 0:
        return head + ")"
    if value.dtype == bool:
        return head + f", true={int(value.sum())})"
    if value.size <= 6:
        return head + f", values={value.tolist()!r})"
    return head + f", min={float(value.min()):.6g}, max={float(value.max()):.6g})"


def summarize(value: Any, *, max_items: int = 6, max_length: int = 300) -> str:
    """Short, bounded rendering of ``value`` for DEBUG call traces."""

    if isinstance(value, np.ndarray):
        return _summarize_array(value)
    if isinstance(value, dict):
        shown = [f"{summarize(k)}: {summarize(v)}" for k, v in list(value.items())[:max_items]]
        if len(value) > max_items:
            shown.append(f"... {len(value) - max_items} more")
        return "{" + ", ".join(shown) + "}"
    if isinstance(value, (list, tuple)):
        shown = [summarize(item) for item in value[:max_items]]
        if len(value) > max_items:
            shown.append(f"... {len(value) - max_items} more")
        opening, closing = ("(", ")") if isinstance(value, tuple) else ("[", "]")
        return opening + ", ".join(shown) + closing
    if isinstance(value, (set, frozenset)):
        return f"{type(value).__name__}(len={len(value)})"

    rendered = _repr.repr(value)
    if len(rendered) > max_length:
        rendered = rendered[:max_length] + "..."
    return rendered


def _describe_call(args: tuple, kwargs: MutableMapping[str, Any]) -> str:
    pieces = [summarize(arg) for arg in args]
    pieces.extend(f"{key}={summarize(val)}" for key, val in kwargs.items())
    return ", ".join(pieces) if pieces else "-"


def debug_log_call(
    logger: logging.Logger, *, name: Optional[str] = None, log_result: bool = True
) -> Callable[[F], F]:
    """Decorator tracing entry, exit and failures of a callable at DEBUG."""

    def decorator(func: F) -> F:
        if getattr(func, _WRAPPED_FLAG, False):
            return func
        label = name or getattr(func, "__qualname__", repr(func))

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            tracing = logger.isEnabledFor(logging.DEBUG)
            if tracing:
                logger.debug("-> %s(%s)", label, _describe_call(args, kwargs))
            try:
                result = func(*args, **kwargs)
            except Exception:
                if tracing:
                    logger.debug("!! %s raised", label, exc_info=True)
                raise
            if tracing:
                logger.debug("<- %s = %s", label, summarize(result) if log_result else "...")
            return result

        setattr(wrapper, _WRAPPED_FLAG, True)
        return cast(F, wrapper)

    return decorator


def _wrap_class(cls: type, logger: logging.Logger, skip: Set[str]) -> None:
    for attr, member in list(vars(cls).items()):
        if attr.startswith("__") or attr in skip or f"{cls.__name__}.{attr}" in skip:
            continue
        label = f"{cls.__name__}.{attr}"
        if isinstance(member, (staticmethod, classmethod)):
            inner = member.__func__
            if getattr(inner, "__module__", None) == cls.__module__:
                setattr(cls, attr, type(member)(debug_log_call(logger, name=label)(inner)))
        elif inspect.isfunction(member) and member.__module__ == cls.__module__:
            setattr(cls, attr, debug_log_call(logger, name=label)(member))


def apply_debug_logging(
    namespace: MutableMapping[str, Any],
    *,
    logger: Optional[logging.Logger] = None,
    skip: Optional[Iterable[str]] = None,
    wrap_methods: bool = True,
) -> None:
    """Wrap the functions (and class methods) defined in a module namespace.

    Called at the bottom of a module as
    ``apply_debug_logging(globals(), logger=logger)``.  Wrappers cost one
    level check while DEBUG is off.
    """

    module = namespace.get("__name__")
    log = logger or logging.getLogger(module if isinstance(module, str) else __name__)
    skipped: Set[str] = set(skip or ())

    for attr, value in list(namespace.items()):
        if attr in skipped or getattr(value, "__module__", None) != module:
            continue
        if inspect.isfunction(value):
            namespace[attr] = debug_log_call(log, name=attr)(value)
        elif wrap_methods and inspect.isclass(value):
            _wrap_class(value, log, skipped)


__all__ = ["apply_debug_logging", "debug_log_call", "summarize"]

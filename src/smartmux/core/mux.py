"""Multiplexer contract and a dict-backed registration target.

The router never matches requests: it formats a route key and hands a
wrapped handler to whatever object implements :class:`Multiplexer`.
:class:`HandlerTable` is the bundled implementation. It stores handlers by
exact route key, in registration order, and rejects duplicates at
registration time so that conflicting routes fail during start-up.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, Protocol, Tuple, runtime_checkable

__all__ = ["Handler", "Middleware", "Multiplexer", "HandlerTable"]

logger = logging.getLogger("smartmux.mux")

Handler = Callable[..., Any]
Middleware = Callable[[Handler], Handler]


@runtime_checkable
class Multiplexer(Protocol):
    """Registration target consumed by the router."""

    def handle_func(self, route_key: str, handler: Handler) -> None: ...


class HandlerTable:
    """Exact-key handler registry implementing :class:`Multiplexer`."""

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {}

    def handle_func(self, route_key: str, handler: Handler) -> None:
        if route_key in self._handlers:
            raise ValueError(f"Route collision: {route_key}")
        self._handlers[route_key] = handler
        logger.debug("handler table: added %s", route_key)

    def lookup(self, route_key: str) -> Handler:
        """Return the handler stored under ``route_key`` (``KeyError`` if missing)."""
        try:
            return self._handlers[route_key]
        except KeyError:
            raise KeyError(f"No handler registered for {route_key!r}") from None

    def keys(self) -> Tuple[str, ...]:
        return tuple(self._handlers)

    def __contains__(self, route_key: object) -> bool:
        return route_key in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._handlers))

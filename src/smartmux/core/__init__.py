"""Core runtime aggregator.

Expose the runtime building blocks from a single module. No extra logic
beyond imports/exports; importing this module does not register plugins.

- ``base_router`` → ``BaseRouter`` (plugin-free engine)
- ``router`` → ``Router`` (plugin-enabled) and ``new``
- ``mux`` → ``Multiplexer`` protocol and ``HandlerTable``
"""

from .base_router import BaseRouter
from .mux import Handler, HandlerTable, Middleware, Multiplexer
from .router import Router, new

__all__ = [
    "BaseRouter",
    "Router",
    "new",
    "Handler",
    "Middleware",
    "Multiplexer",
    "HandlerTable",
]

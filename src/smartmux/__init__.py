"""SmartMux public API surface.

- Public exports: ``Router``, ``new``, ``HandlerTable``, ``Multiplexer``,
  ``Middleware``.
- Plugin registration: built-in plugins (``logging``) are imported for their
  side effect of calling ``Router.register_plugin(<class>)``. Imports are
  done lazily via ``import_module`` to avoid cycles.
- Import stays lightweight: no router instantiation beyond plugin
  registration.
"""

from importlib import import_module

__version__ = "0.1.0"

from .core import HandlerTable, Middleware, Multiplexer, Router, new

for _plugin in ("logging",):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "Router",
    "new",
    "HandlerTable",
    "Multiplexer",
    "Middleware",
]

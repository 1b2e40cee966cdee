"""Request logging plugin, registered as ``"logging"``.

Every call through a wrapped route produces up to two records on the plugin
logger (``logging.getLogger("smartmux.requests")`` unless one is passed to
``plug``):

- ``"GET /users started"`` when ``before`` is on;
- ``"GET /users finished in 1.23 ms"`` when ``after`` is on, or a WARNING
  ``"GET /users slow: 812.40 ms (threshold 500.00 ms)"`` once ``slow_ms`` is
  set and reached;
- an ERROR ``"GET /users failed after 0.40 ms: KeyError"`` when the handler
  raises. The exception is re-raised unchanged.

``level`` (``"DEBUG"``, ``"INFO"``, ``"WARNING"``, ``"ERROR"``) applies to the
started/finished records. Options can be set plugin-wide
(``plug("logging", level="DEBUG")``, ``router.logging.configure(...)``) or
for one route (``router.get(path, h, logging_after=False)``).
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Literal, Optional

from smartmux.core.router import Router
from smartmux.plugins._base_plugin import BasePlugin, RouteEntry

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class LoggingPlugin(BasePlugin):
    """Logs each request with its method, path and duration."""

    plugin_code = "logging"
    plugin_description = "Logs requests with timing"

    __slots__ = ("_logger",)

    def __init__(self, *, logger: Optional[logging.Logger] = None, **options):
        self._logger = logger or logging.getLogger("smartmux.requests")
        super().__init__(**options)

    def configure(
        self,
        enabled: bool = True,
        before: bool = True,
        after: bool = True,
        level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
        slow_ms: Optional[float] = None,
    ):
        """Options: ``enabled``, ``before``, ``after``, ``level``, ``slow_ms``."""

    def wrap_handler(self, router, entry: RouteEntry, call_next: Callable):
        method, path = entry.method, entry.path

        def logged(*args, **kwargs):
            options = self.configuration(entry.route_key)
            level = _LEVELS[options.get("level", "INFO")]
            if options.get("before", True):
                self._logger.log(level, "%s %s started", method, path)
            started = time.perf_counter()
            try:
                result = call_next(*args, **kwargs)
            except Exception as exc:
                elapsed = (time.perf_counter() - started) * 1000
                self._logger.error(
                    "%s %s failed after %.2f ms: %s", method, path, elapsed, type(exc).__name__
                )
                raise
            elapsed = (time.perf_counter() - started) * 1000
            slow_ms = options.get("slow_ms")
            if slow_ms is not None and elapsed >= slow_ms:
                self._logger.warning(
                    "%s %s slow: %.2f ms (threshold %.2f ms)", method, path, elapsed, slow_ms
                )
            elif options.get("after", True):
                self._logger.log(level, "%s %s finished in %.2f ms", method, path, elapsed)
            return result

        return logged


Router.register_plugin(LoggingPlugin)

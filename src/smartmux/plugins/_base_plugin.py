"""Plugin contract definitions used by the Router runtime.

Objects
~~~~~~~
``RouteEntry``
    Dataclass capturing one registration. Fields:

    - ``method`` – HTTP method string, as passed by the caller
    - ``path`` – full path (router base path + endpoint path)
    - ``route_key`` – ``"<method> <path>"`` handed to the multiplexer
    - ``func`` – the original handler
    - ``router`` – router that performed the registration
    - ``middlewares`` – tuple snapshot of the middleware list at registration
    - ``handler`` – the installed (wrapped) callable
    - ``metadata`` – mutable dict for caller options and plugin annotations

``BasePlugin``
    Base class for middleware plugins. A plugin sits in the router middleware
    list like any other middleware; the difference is that the router calls
    ``wrap_handler(router, entry, call_next)`` instead of ``mw(call_next)``,
    so the plugin sees the route entry it is wrapping.

    Required class attributes:

    - ``plugin_code`` – unique identifier used for registration (e.g. "logging")
    - ``plugin_description`` – human-readable description of the plugin

    ``configure(**options)``
        Subclasses declare accepted options in the signature of their own
        ``configure``; the body is never run for its own sake. At class
        creation it is replaced by a wrapper that:
        - turns ``flags`` ("enabled,before:off") into booleans
        - picks the bucket from ``_target``: ``"--base--"`` (default) for
          plugin-wide options, one route key, or several comma separated
        - checks the options with Pydantic's ``validate_call``; ``enabled``
          is accepted (as a bool) even when the signature leaves it out
        - stores the options in that bucket

    ``configuration(route_key=None)``
        Plugin-wide options overlaid with the ones stored for ``route_key``.

    ``clone()``
        Copy with its own option buckets. Routers clone the plugins of a
        copied middleware list, so derived routers never share plugin state
        with their parent.
"""

from __future__ import annotations

import copy
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import TypeAdapter, validate_call

__all__ = ["BasePlugin", "RouteEntry"]

BASE_TARGET = "--base--"

_ENABLED = TypeAdapter(bool)


@dataclass
class RouteEntry:
    """Metadata for a registered route."""

    method: str
    path: str
    route_key: str
    func: Optional[Callable]
    router: Any
    middlewares: Tuple[Any, ...] = ()
    handler: Optional[Callable] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def _split_targets(target: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in target.split(",") if part.strip())


def _as_option_setter(declared: Callable) -> Callable:
    """Turn a signature-only configure() into a validating option setter."""
    check = validate_call(declared)
    takes_enabled = "enabled" in inspect.signature(declared).parameters

    def configure(
        self: "BasePlugin",
        *,
        _target: str = BASE_TARGET,
        flags: Optional[str] = None,
        **options: Any,
    ) -> None:
        if flags:
            options = {**self._parse_flags(flags), **options}
        if "enabled" in options and not takes_enabled:
            options["enabled"] = _ENABLED.validate_python(options["enabled"])
            check(self, **{k: v for k, v in options.items() if k != "enabled"})
        else:
            check(self, **options)
        for target in _split_targets(_target):
            self._write_config(target, options)

    configure.__doc__ = declared.__doc__
    return configure


class BasePlugin:
    """Hook interface + configuration helpers for router plugins."""

    __slots__ = ("name", "_store")

    plugin_code: str = ""
    plugin_description: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        declared = cls.__dict__.get("configure")
        if declared is not None:
            cls.configure = _as_option_setter(declared)

    def __init__(self, **config: Any):
        self.name = self.plugin_code
        self._store: Dict[str, Dict[str, Any]] = {BASE_TARGET: {"enabled": True}}
        self.configure(**config)

    def configure(self, *, _target: str = BASE_TARGET, flags: Optional[str] = None) -> None:
        """Plugins without options of their own only understand ``flags``."""
        if flags:
            for target in _split_targets(_target):
                self._write_config(target, self._parse_flags(flags))

    def _write_config(self, target: str, options: Dict[str, Any]) -> None:
        if options:
            self._store.setdefault(target, {}).update(options)

    def configuration(self, route_key: Optional[str] = None) -> Dict[str, Any]:
        merged = dict(self._store.get(BASE_TARGET, {}))
        if route_key:
            merged.update(self._store.get(route_key, {}))
        return merged

    def is_enabled(self, route_key: Optional[str] = None) -> bool:
        return bool(self.configuration(route_key).get("enabled", True))

    def clone(self) -> "BasePlugin":
        twin = copy.copy(self)
        twin._store = {target: dict(options) for target, options in self._store.items()}
        return twin

    @staticmethod
    def _parse_flags(flags: str) -> Dict[str, bool]:
        parsed: Dict[str, bool] = {}
        for token in _split_targets(flags):
            key, _, state = token.partition(":")
            parsed[key.strip()] = state.strip().lower() != "off"
        return parsed

    def on_decore(self, router: Any, entry: RouteEntry) -> None:  # pragma: no cover - default no-op
        """Hook run once the multiplexer has accepted a route wrapped by this plugin."""

    def wrap_handler(
        self,
        router: Any,
        entry: RouteEntry,
        call_next: Callable,
    ) -> Callable:
        """Wrap handler invocation; default passthrough."""
        return call_next

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

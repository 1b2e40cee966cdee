"""Router with plugin pipeline.

``Router`` extends ``BaseRouter`` with a global plugin registry and lets
plugins sit in the middleware list next to plain middlewares.

Global registry
---------------
``Router.register_plugin(plugin_class, name=None)`` accepts ``BasePlugin``
subclasses only (``TypeError``) and requires a ``plugin_code``
(``ValueError``). A code already bound to another class is refused
(``ValueError``); passing ``name`` registers under that name and replaces
whatever was there. ``available_plugins`` returns a copy of the registry.

Attaching plugins
-----------------
``plug(plugin_name, **config)`` builds the registered class with ``config``
and appends the instance to ``middlewares``, so it lands in the chain exactly
where an ``add_middlewares`` call would put it. Unknown names raise
``ValueError`` (listing what is available), non-strings ``TypeError``.
``router.<plugin_name>`` returns the attached instance or raises
``AttributeError``.

Wrapping pipeline
-----------------
A plain middleware is applied as ``mw(call_next)``. A plugin contributes
``plugin.wrap_handler(self, entry, call_next)`` behind a guard that goes
straight to ``call_next`` while the plugin is disabled for the route key.

Derived routers
---------------
``sub_group`` clones every plugin of the copied list (``BasePlugin.clone``):
the sub-group starts from the parent's plugin options and from then on the
two are configured independently. Routes already registered keep the plugin
instances they were wrapped with.

After registration
------------------
Once the multiplexer accepted a route, ``metadata["plugin_config"]`` (from
``<plugin>_<key>`` registration options) is stored as per-route options on
the matching plugins of the snapshot, and ``on_decore`` runs for each of
them. A rejected registration leaves plugin options untouched.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Type

from smartmux.core.base_router import BaseRouter
from smartmux.plugins._base_plugin import BasePlugin, RouteEntry

__all__ = ["Router", "new"]

_PLUGIN_REGISTRY: Dict[str, Type[BasePlugin]] = {}


def _plugins_in(middlewares: Iterable[Any]) -> Iterator[BasePlugin]:
    return (mw for mw in middlewares if isinstance(mw, BasePlugin))


class Router(BaseRouter):
    """Router with plugin registry/pipeline support."""

    __slots__ = ()

    # ------------------------------------------------------------------
    # Plugin registry
    # ------------------------------------------------------------------
    @classmethod
    def register_plugin(cls, plugin_class: Type[BasePlugin], name: Optional[str] = None) -> None:
        """Make ``plugin_class`` available to ``plug()``.

        Args:
            plugin_class: BasePlugin subclass declaring ``plugin_code``.
            name: Registry name; replaces any previous class under it.
                Defaults to ``plugin_code``, which must not be taken by
                another class.
        """
        if not (isinstance(plugin_class, type) and issubclass(plugin_class, BasePlugin)):
            raise TypeError("plugin_class must be a BasePlugin subclass")
        code = getattr(plugin_class, "plugin_code", "")
        if not code:
            raise ValueError(f"Plugin {plugin_class.__name__} declares no plugin_code")
        if name is None and _PLUGIN_REGISTRY.get(code, plugin_class) is not plugin_class:
            raise ValueError(f"Plugin '{code}' already registered")
        _PLUGIN_REGISTRY[name or code] = plugin_class

    @classmethod
    def available_plugins(cls) -> Dict[str, Type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, plugin: str, **config: Any) -> "Router":
        """Append the plugin registered as ``plugin`` to the middleware list."""
        if not isinstance(plugin, str):
            raise TypeError(f"plug() expects a registered plugin name, got {type(plugin).__name__}")
        try:
            plugin_class = _PLUGIN_REGISTRY[plugin]
        except KeyError:
            known = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(f"Unknown plugin '{plugin}'. Available plugins: {known}") from None
        instance = plugin_class(**config)
        instance.name = plugin
        self.middlewares.append(instance)
        return self

    # ------------------------------------------------------------------
    # Plugin access
    # ------------------------------------------------------------------
    def iter_plugins(self) -> List[BasePlugin]:
        """Plugins in the middleware list, outermost first."""
        return list(_plugins_in(self.middlewares))

    def get_config(self, plugin_name: str, route_key: Optional[str] = None) -> Dict[str, Any]:
        return self._plugin_by_name(plugin_name).configuration(route_key)

    def _plugin_by_name(self, name: str) -> BasePlugin:
        found = next((p for p in _plugins_in(self.middlewares) if p.name == name), None)
        if found is None:
            raise AttributeError(f"No plugin named '{name}' attached to router {self.base_path!r}")
        return found

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name in BaseRouter.__slots__:
            raise AttributeError(name)
        return self._plugin_by_name(name)

    # ------------------------------------------------------------------
    # BaseRouter hooks
    # ------------------------------------------------------------------
    def _apply_middleware(  # type: ignore[override]
        self, middleware: Any, entry: RouteEntry, call_next: Callable
    ) -> Callable:
        if not isinstance(middleware, BasePlugin):
            return middleware(call_next)
        plugin_call = middleware.wrap_handler(self, entry, call_next)

        @wraps(call_next)
        def guarded(*args, **kwargs):
            if middleware.is_enabled(entry.route_key):
                return plugin_call(*args, **kwargs)
            return call_next(*args, **kwargs)

        return guarded

    def _copy_middleware(self, middleware: Any) -> Any:  # type: ignore[override]
        if isinstance(middleware, BasePlugin):
            return middleware.clone()
        return middleware

    def _option_prefixes(self, snapshot: Tuple[Any, ...]) -> Iterable[str]:  # type: ignore[override]
        return {plugin.name for plugin in _plugins_in(snapshot)}

    def _check_entry(self, entry: RouteEntry) -> None:  # type: ignore[override]
        # An empty target validates without storing anything.
        per_route = entry.metadata.get("plugin_config", {})
        for plugin in _plugins_in(entry.middlewares):
            if per_route.get(plugin.name):
                plugin.configure(_target="", **per_route[plugin.name])

    def _after_entry_registered(self, entry: RouteEntry) -> None:  # type: ignore[override]
        per_route = entry.metadata.get("plugin_config", {})
        for plugin in _plugins_in(entry.middlewares):
            options = per_route.get(plugin.name)
            if options:
                plugin.configure(_target=entry.route_key, **options)
            plugin.on_decore(self, entry)

    def _describe_entry_extra(  # type: ignore[override]
        self, entry: RouteEntry, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:
        plugins = {
            plugin.name: {"config": plugin.configuration(entry.route_key)}
            for plugin in _plugins_in(entry.middlewares)
        }
        return {"plugins": plugins} if plugins else {}


def new(mux: Any) -> Router:
    """Return a root router registering into ``mux``."""
    return Router(mux)

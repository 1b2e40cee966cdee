"""Plugin-free router runtime.

The module exposes :class:`BaseRouter`, which formats route keys, composes
middleware chains and delegates registration to an external multiplexer.
Subclasses add plugin support but must preserve these semantics.

Constructor and slots
---------------------
Constructor signature::

    BaseRouter(mux, *, base_path="", middlewares=None)

- ``mux`` is any object exposing ``handle_func(route_key, handler)``. It is
  borrowed, never validated, copied, wrapped or closed.
- Slots: ``mux``, ``base_path``, ``middlewares`` (list, first = outermost),
  ``_entries`` (route key → RouteEntry, registrations made by this router).
- ``middlewares`` passed to the constructor are copied into a new list.

Registration
------------
``route(method, path, handler, *, metadata=None, **options)``

- route key is ``f"{method} {base_path}{path}"``: one space, literal
  concatenation, no slash normalisation, no method normalisation.
- the handler is wrapped with the middleware list as it is *now*; later
  ``add_middlewares`` calls only affect later registrations.
- ``mux.handle_func(route_key, wrapped)`` is called once, whatever the
  handler is (``None`` included). Duplicate keys and bad handlers are the
  multiplexer's business; the router detects nothing.
- nothing is recorded before the multiplexer accepts the route: the entry
  and ``_after_entry_registered`` only happen once ``handle_func`` returned.
- ``options`` named ``<plugin>_<key>``, where ``<plugin>`` is a plugin in the
  middleware snapshot, are grouped under ``metadata["plugin_config"]``;
  everything else is stored as entry metadata.
- returns ``self``. With ``handler`` left out entirely a decorator is
  returned instead; it registers the function and returns it unchanged.

``get``/``post``/``put``/``patch``/``delete`` are ``route`` with a fixed
method.

Middleware composition
----------------------
``_wrap_handler(entry, call_next)`` folds the entry's middleware snapshot
right to left: ``wrapped = mw(wrapped)`` starting from the handler, so the
first middleware added is the outermost layer. An empty list returns the
handler object itself. ``_apply_middleware`` is the per-layer hook plugin
routers override. Composition happens once, at registration time.

Derived routers
---------------
- ``group(base_path)``: new router, base path replaced, empty middleware list.
- ``sub_group(path_suffix)``: new router, ``base_path + path_suffix``, middleware
  list copied into new storage (``_copy_middleware`` per item).

Both share ``mux`` with the parent and are built through ``type(self)`` so
subclasses derive their own kind. Deriving never touches the parent.

Concurrency
-----------
There is no locking. Configure every route from a single thread before the
multiplexer starts serving requests.

Hooks for subclasses
--------------------
- ``_apply_middleware``: build one layer of the chain.
- ``_copy_middleware``: copy one middleware into a sub-group's list.
- ``_option_prefixes``: names whose ``<name>_<key>`` options are plugin config.
- ``_check_entry``: reject an entry before it is wrapped; must not mutate.
- ``_after_entry_registered``: invoked once the multiplexer accepted a route.
- ``_describe_entry_extra``: extend per-entry description in ``members()``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from smartmux.core.mux import Handler, Middleware
from smartmux.plugins._base_plugin import RouteEntry

__all__ = ["BaseRouter", "METHOD_GET", "METHOD_POST", "METHOD_PUT", "METHOD_PATCH", "METHOD_DELETE"]

logger = logging.getLogger("smartmux")

METHOD_GET = "GET"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_PATCH = "PATCH"
METHOD_DELETE = "DELETE"

_MISSING: Any = object()


class BaseRouter:
    """Plugin-free router bound to an external multiplexer.

    Responsibilities:
    - format route keys from method, base path and endpoint path
    - wrap handlers with the current middleware list and register them
    - derive groups and sub-groups with independent middleware storage
    - expose registered entries for introspection
    """

    __slots__ = (
        "mux",
        "base_path",
        "middlewares",
        "_entries",
    )

    def __init__(
        self,
        mux: Any,
        *,
        base_path: str = "",
        middlewares: Optional[List[Middleware]] = None,
    ) -> None:
        self.mux = mux
        self.base_path = base_path
        self.middlewares: List[Middleware] = list(middlewares or [])
        self._entries: Dict[str, RouteEntry] = {}

    # ------------------------------------------------------------------
    # Middlewares
    # ------------------------------------------------------------------
    def add_middlewares(self, *middlewares: Middleware) -> "BaseRouter":
        """Append middlewares, in the given order, to this router's chain."""
        self.middlewares.extend(middlewares)
        return self

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def route(
        self,
        method: str,
        path: str,
        handler: Optional[Handler] = _MISSING,
        *,
        metadata: Optional[Dict[str, Any]] = None,
        **options: Any,
    ) -> Any:
        """Register ``handler`` for ``method`` on ``base_path + path``.

        Args:
            method: HTTP method, used verbatim in the route key.
            path: Endpoint path appended to the router base path.
            handler: Callable to install, forwarded as given. When left out
                a decorator is returned.
            metadata: Extra metadata stored on the RouteEntry.
            options: Extra metadata, or ``<plugin>_<key>`` plugin config.

        Returns:
            self (to allow chaining), or a decorator when ``handler`` is left out.
        """
        if handler is _MISSING:

            def decorator(func: Handler) -> Handler:
                self.route(method, path, func, metadata=metadata, **options)
                return func

            return decorator

        snapshot = tuple(self.middlewares)
        full_path = f"{self.base_path}{path}"
        entry = RouteEntry(
            method=method,
            path=full_path,
            route_key=self._route_key(method, full_path),
            func=handler,
            router=self,
            middlewares=snapshot,
            metadata=self._entry_metadata(snapshot, metadata, options),
        )
        self._check_entry(entry)
        entry.handler = self._wrap_handler(entry, handler)
        self.mux.handle_func(entry.route_key, entry.handler)
        self._entries[entry.route_key] = entry
        self._after_entry_registered(entry)
        logger.debug("registered %s (%d middlewares)", entry.route_key, len(snapshot))
        return self

    def get(self, path: str, handler: Optional[Handler] = _MISSING, **options: Any) -> Any:
        return self.route(METHOD_GET, path, handler, **options)

    def post(self, path: str, handler: Optional[Handler] = _MISSING, **options: Any) -> Any:
        return self.route(METHOD_POST, path, handler, **options)

    def put(self, path: str, handler: Optional[Handler] = _MISSING, **options: Any) -> Any:
        return self.route(METHOD_PUT, path, handler, **options)

    def patch(self, path: str, handler: Optional[Handler] = _MISSING, **options: Any) -> Any:
        return self.route(METHOD_PATCH, path, handler, **options)

    def delete(self, path: str, handler: Optional[Handler] = _MISSING, **options: Any) -> Any:
        return self.route(METHOD_DELETE, path, handler, **options)

    @staticmethod
    def _route_key(method: str, full_path: str) -> str:
        return f"{method} {full_path}"

    def _entry_metadata(
        self,
        snapshot: Tuple[Any, ...],
        metadata: Optional[Dict[str, Any]],
        options: Dict[str, Any],
    ) -> Dict[str, Any]:
        prefixes = sorted(self._option_prefixes(snapshot), key=len, reverse=True)
        entry_meta: Dict[str, Any] = dict(metadata or {})
        plugin_config: Dict[str, Dict[str, Any]] = {}
        for key, value in options.items():
            owner = next((p for p in prefixes if key.startswith(f"{p}_")), None)
            if owner is None:
                entry_meta[key] = value
            else:
                plugin_config.setdefault(owner, {})[key[len(owner) + 1 :]] = value
        if plugin_config:
            entry_meta["plugin_config"] = plugin_config
        return entry_meta

    # ------------------------------------------------------------------
    # Handler wrapping
    # ------------------------------------------------------------------
    def _wrap_handler(self, entry: RouteEntry, call_next: Callable) -> Callable:
        wrapped = call_next
        for middleware in reversed(entry.middlewares):
            wrapped = self._apply_middleware(middleware, entry, wrapped)
        return wrapped

    def _apply_middleware(
        self, middleware: Any, entry: RouteEntry, call_next: Callable
    ) -> Callable:
        return middleware(call_next)

    # ------------------------------------------------------------------
    # Derived routers
    # ------------------------------------------------------------------
    def group(self, base_path: str) -> "BaseRouter":
        """Return a router for ``base_path`` that starts with no middlewares.

        The base path replaces this router's one. This router is not modified.

        Example::

            api = Router(mux).add_middlewares(auth, log)
            users = api.group("/users")
            users.get("", list_users).post("/{id}", update_user)

            # 'GET /users' and 'POST /users/{id}' wrapped by no middleware
        """
        return self._derive(base_path, ())

    def sub_group(self, path_suffix: str) -> "BaseRouter":
        """Return a router for ``base_path + path_suffix`` reusing the middlewares.

        The middleware list is copied: adding middlewares to either router
        later does not affect the other.

        Example::

            api = Router(mux).add_middlewares(auth, log)
            api.sub_group("/users").get("", list_users).post("/{id}", update_user)

            # 'GET /users' and 'POST /users/{id}' wrapped by auth and log
        """
        return self._derive(f"{self.base_path}{path_suffix}", self.middlewares)

    def _derive(self, base_path: str, middlewares: Iterable[Middleware]) -> "BaseRouter":
        copied = [self._copy_middleware(mw) for mw in middlewares]
        child = type(self)(self.mux, base_path=base_path, middlewares=copied)
        logger.debug(
            "derived router %r from %r (%d middlewares)",
            base_path,
            self.base_path,
            len(copied),
        )
        return child

    def _copy_middleware(self, middleware: Middleware) -> Middleware:
        return middleware

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def entries(self) -> Tuple[str, ...]:
        """Return the route keys registered through this router, in order."""
        return tuple(self._entries.keys())

    def members(self) -> Dict[str, Any]:
        """Describe this router and the routes it registered ({} when none)."""
        if not self._entries:
            return {}
        return {
            "base_path": self.base_path,
            "router": self,
            "middlewares": [self._middleware_name(mw) for mw in self.middlewares],
            "entries": {
                route_key: self._entry_member_info(entry)
                for route_key, entry in self._entries.items()
            },
        }

    def _entry_member_info(self, entry: RouteEntry) -> Dict[str, Any]:
        doc = getattr(entry.func, "__doc__", None) if entry.func is not None else None
        info: Dict[str, Any] = {
            "method": entry.method,
            "path": entry.path,
            "callable": entry.func,
            "middlewares": [self._middleware_name(mw) for mw in entry.middlewares],
            "metadata": entry.metadata,
            "doc": doc or "",
        }
        extra = self._describe_entry_extra(entry, info)
        if extra:
            info.update(extra)
        return info

    @staticmethod
    def _middleware_name(middleware: Any) -> str:
        name = getattr(middleware, "name", None)
        if isinstance(name, str):
            return name
        return getattr(middleware, "__qualname__", None) or repr(middleware)

    # ------------------------------------------------------------------
    # Hooks (no-op for BaseRouter)
    # ------------------------------------------------------------------
    def _option_prefixes(self, snapshot: Tuple[Any, ...]) -> Iterable[str]:
        return ()

    def _check_entry(self, entry: RouteEntry) -> None:
        """Hook to reject an entry before anything is registered; no side effects."""
        return None

    def _after_entry_registered(
        self, entry: RouteEntry
    ) -> None:  # pragma: no cover - hook for subclasses
        """Hook invoked once the multiplexer accepted ``entry``."""
        return None

    def _describe_entry_extra(
        self, entry: RouteEntry, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:  # pragma: no cover - overridden when plugins present
        return {}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} base_path={self.base_path!r} middlewares={len(self.middlewares)}>"

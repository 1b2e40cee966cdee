"""Tests for route key composition, middleware ordering and derived routers."""

import pytest

from smartmux import HandlerTable, Router, new
from smartmux.core import BaseRouter


class RecordingMux:
    """Multiplexer double that records every registration call."""

    def __init__(self):
        self.calls = []

    def handle_func(self, route_key, handler):
        self.calls.append((route_key, handler))

    def keys(self):
        return [key for key, _ in self.calls]

    def handler(self, route_key):
        for key, handler in self.calls:
            if key == route_key:
                return handler
        raise KeyError(route_key)


class Layer:
    """Wrapped handler that remembers which middleware produced it."""

    def __init__(self, label, inner, trace):
        self.label = label
        self.inner = inner
        self.trace = trace

    def __call__(self, writer, request):
        self.trace.append(f"{self.label}:in")
        result = self.inner(writer, request)
        self.trace.append(f"{self.label}:out")
        return result


def layer(label, trace):
    def middleware(next_handler):
        return Layer(label, next_handler, trace)

    middleware.__qualname__ = label
    return middleware


def make_handler(name, trace):
    def handler(writer, request):
        trace.append(name)
        return name

    return handler


def test_new_returns_empty_router():
    mux = RecordingMux()
    router = new(mux)
    assert isinstance(router, Router)
    assert router.mux is mux
    assert router.base_path == ""
    assert router.middlewares == []


@pytest.mark.parametrize(
    "verb,method",
    [
        ("get", "GET"),
        ("post", "POST"),
        ("put", "PUT"),
        ("patch", "PATCH"),
        ("delete", "DELETE"),
    ],
)
def test_route_key_is_method_space_base_path_path(verb, method):
    mux = RecordingMux()
    router = Router(mux, base_path="/api")
    handler = make_handler("h", [])

    result = getattr(router, verb)("/items/{id}", handler)

    assert result is router
    assert mux.keys() == [f"{method} /api/items/{{id}}"]


def test_route_key_concatenation_is_literal():
    mux = RecordingMux()
    router = Router(mux, base_path="/api/")
    handler = make_handler("h", [])
    router.get("/double", handler).get("", handler).get("nosep", handler)
    assert mux.keys() == ["GET /api//double", "GET /api/", "GET /api/nosep"]


def test_generic_route_keeps_method_verbatim():
    mux = RecordingMux()
    router = new(mux)
    router.route("options", "/x", make_handler("h", []))
    assert mux.keys() == ["options /x"]


def test_middleware_order_outer_to_inner():
    trace = []
    mux = RecordingMux()
    router = new(mux).add_middlewares(layer("m1", trace), layer("m2", trace))
    router.get("/a", make_handler("handler", trace))

    assert mux.handler("GET /a")("w", "r") == "handler"
    assert trace == ["m1:in", "m2:in", "handler", "m2:out", "m1:out"]


def test_add_middlewares_appends_in_order_without_dedup():
    trace = []
    m1 = layer("m1", trace)
    router = new(RecordingMux())
    assert router.add_middlewares(m1) is router
    router.add_middlewares(m1, layer("m2", trace))
    router.add_middlewares()
    assert [mw.__qualname__ for mw in router.middlewares] == ["m1", "m1", "m2"]


def test_empty_middleware_list_installs_original_handler():
    mux = RecordingMux()
    handler = make_handler("h", [])
    new(mux).post("/a", handler)
    assert mux.handler("POST /a") is handler


def test_group_resets_middlewares_and_replaces_base_path():
    trace = []
    m1, m2 = layer("m1", trace), layer("m2", trace)
    mux = RecordingMux()
    root = Router(mux, base_path="/api").add_middlewares(m1)

    group = root.group("/x")
    assert group is not root
    assert isinstance(group, Router)
    assert group.base_path == "/x"
    assert group.middlewares == []
    assert group.mux is mux

    group.add_middlewares(m2)
    assert root.middlewares == [m1]
    assert root.base_path == "/api"


def test_sub_group_inherits_copy_of_middlewares():
    trace = []
    m1, m2, m3 = layer("m1", trace), layer("m2", trace), layer("m3", trace)
    mux = RecordingMux()
    root = Router(mux, base_path="/api").add_middlewares(m1)

    sub = root.sub_group("/x")
    assert sub.base_path == "/api/x"
    assert sub.middlewares == [m1]
    assert sub.middlewares is not root.middlewares
    assert sub.mux is mux

    sub.add_middlewares(m2)
    assert root.middlewares == [m1]
    assert sub.middlewares == [m1, m2]

    root.add_middlewares(m3)
    assert sub.middlewares == [m1, m2]


def test_chained_registrations_share_router_state():
    mux = RecordingMux()
    handler = make_handler("h", [])
    router = Router(mux, base_path="/v1")
    router.get("/a", handler).put("/b", handler)
    assert mux.keys() == ["GET /v1/a", "PUT /v1/b"]


def test_registration_snapshots_middlewares():
    trace = []
    mux = RecordingMux()
    handler = make_handler("h", trace)
    router = new(mux)

    router.get("/before", handler)
    router.add_middlewares(layer("m1", trace))
    router.get("/after", handler)

    assert mux.handler("GET /before") is handler
    wrapped = mux.handler("GET /after")
    assert isinstance(wrapped, Layer) and wrapped.inner is handler
    assert len(router.middlewares) == 1


def test_end_to_end_scenario():
    trace = []
    auth, log, rate = layer("auth", trace), layer("log", trace), layer("ratelimit", trace)
    login = make_handler("login", trace)
    listing = make_handler("list", trace)
    mux = RecordingMux()

    root = new(mux).add_middlewares(auth, log)
    root.post("/login", login)
    users = root.sub_group("/users").add_middlewares(rate)
    users.get("", listing)

    assert mux.keys() == ["POST /login", "GET /users"]

    installed = mux.handler("POST /login")
    assert installed.label == "auth"
    assert installed.inner.label == "log"
    assert installed.inner.inner is login

    installed = mux.handler("GET /users")
    assert [installed.label, installed.inner.label, installed.inner.inner.label] == [
        "auth",
        "log",
        "ratelimit",
    ]
    assert installed.inner.inner.inner is listing
    assert root.middlewares == [auth, log]


def test_duplicate_keys_are_left_to_the_multiplexer():
    mux = RecordingMux()
    handler = make_handler("h", [])
    new(mux).get("/a", handler).get("/a", handler)
    assert mux.keys() == ["GET /a", "GET /a"]

    table = HandlerTable()
    router = new(table).get("/a", handler)
    with pytest.raises(ValueError, match="Route collision: GET /a"):
        router.get("/a", handler)
    assert router.entries() == ("GET /a",)


def test_decorator_registration_returns_function():
    mux = RecordingMux()
    router = new(mux)

    @router.get("/hello")
    def hello(writer, request):
        return "hi"

    @router.route("HEAD", "/hello")
    def head(writer, request):
        return ""

    assert hello("w", "r") == "hi"
    assert mux.keys() == ["GET /hello", "HEAD /hello"]
    assert mux.handler("GET /hello") is hello


def test_entries_and_metadata():
    router = new(RecordingMux())
    handler = make_handler("h", [])
    router.get("/a", handler, metadata={"tag": "x"}, summary="first")
    router.delete("/a", handler)

    assert router.entries() == ("GET /a", "DELETE /a")
    entry = router._entries["GET /a"]
    assert entry.method == "GET"
    assert entry.path == "/a"
    assert entry.func is handler
    assert entry.handler is handler
    assert entry.router is router
    assert entry.metadata == {"tag": "x", "summary": "first"}


def test_members_describes_own_entries():
    trace = []
    router = new(RecordingMux()).add_middlewares(layer("auth", trace))
    handler = make_handler("h", trace)
    handler.__doc__ = "Say hi."
    router.get("/a", handler)
    users = router.sub_group("/users")
    users.post("", handler)

    info = router.members()
    assert info["base_path"] == ""
    assert info["middlewares"] == ["auth"]
    assert list(info["entries"]) == ["GET /a"]
    assert info["entries"]["GET /a"]["doc"] == "Say hi."
    assert info["entries"]["GET /a"]["middlewares"] == ["auth"]
    assert "routers" not in info
    assert list(users.members()["entries"]) == ["POST /users"]

    assert new(RecordingMux()).members() == {}


def test_deriving_leaves_parent_unchanged():
    trace = []
    m1 = layer("m1", trace)
    mux = RecordingMux()
    root = Router(mux, base_path="/api").add_middlewares(m1)
    root.get("/a", make_handler("h", trace))
    before = root.members()

    root.group("/x").get("/b", make_handler("h", trace))
    root.sub_group("/y").add_middlewares(layer("m2", trace)).get("/c", make_handler("h", trace))

    assert root.members() == before
    assert root.entries() == ("GET /api/a",)
    assert root.middlewares == [m1]
    assert root.base_path == "/api"


def test_explicit_none_handler_reaches_the_multiplexer():
    mux = RecordingMux()
    router = new(mux)

    result = router.get("/a", None).put("/b", None)

    assert result is router
    assert mux.calls == [("GET /a", None), ("PUT /b", None)]
    assert router.members()["entries"]["GET /a"]["doc"] == ""


def test_explicit_none_handler_is_wrapped_like_any_handler():
    seen = []

    def remember(next_handler):
        seen.append(next_handler)
        return next_handler

    mux = RecordingMux()
    new(mux).add_middlewares(remember).delete("/a", None)
    assert seen == [None]
    assert mux.calls == [("DELETE /a", None)]


def test_rejected_registration_is_not_recorded():
    table = HandlerTable()
    router = new(table).get("/a", make_handler("h", []))
    with pytest.raises(ValueError):
        router.get("/a", make_handler("other", []), summary="second")
    assert router.entries() == ("GET /a",)
    assert "summary" not in router._entries["GET /a"].metadata


def test_base_router_derives_its_own_kind():
    root = BaseRouter(RecordingMux())
    assert type(root.group("/x")) is BaseRouter
    assert type(root.sub_group("/y")) is BaseRouter
    assert "BaseRouter" in repr(root)

"""
Example showing how to use SmartMux with groups, sub-groups and plugins.
"""

from __future__ import annotations

from smartmux import HandlerTable, Router, new


def require_token(next_handler):
    def handler(writer, request):
        if request.get("token") != "secret":
            writer.append("401 unauthorized")
            return None
        return next_handler(writer, request)

    return handler


def json_content(next_handler):
    def handler(writer, request):
        writer.append("content-type: application/json")
        return next_handler(writer, request)

    return handler


def login(writer, request):
    writer.append("logged in")


def list_users(writer, request):
    writer.append("[alice, bob]")


def show_user(writer, request):
    writer.append(f"user {request['id']}")


def health(writer, request):
    writer.append("ok")


def build(mux: HandlerTable | None = None) -> tuple[HandlerTable, Router]:
    mux = mux or HandlerTable()
    api = new(mux).add_middlewares(json_content)
    api.post("/login", login)

    users = api.sub_group("/users").add_middlewares(require_token).plug("logging")
    users.get("", list_users).get("/{id}", show_user)

    api.group("/internal").get("/health", health)
    return mux, api


if __name__ == "__main__":
    table, _ = build()
    for route_key in table:
        print(route_key)
    out: list[str] = []
    table.lookup("GET /users/{id}")(out, {"token": "secret", "id": 7})
    print(out)

"""Rill — file-routed HTML streaming for ASGI.

Every module under ``pages/`` is a route. Its ``handler(ctx)`` returns a
content tree (strings, lists, awaitables, generators, byte streams,
suspense boundaries), which is flattened and streamed to the client as
it renders. Slow sub-trees stream out of order behind a placeholder.

Basic usage::

    # pages/index.py
    from rill import Await

    async def handler(ctx):
        return [
            "<h1>Dashboard</h1>",
            Await(load_stats(), placeholder="<p>Loading…</p>",
                  then=lambda s: f"<p>{s.total} orders</p>"),
        ]

    # site.py
    from rill import App, AppConfig

    app = App(AppConfig(debug=True))

Then ``rill run site:app``.
"""

__version__ = "0.1.0-dev"
__all__ = [
    "App",
    "AppConfig",
    "Await",
    "ByteStream",
    "ConfigurationError",
    "HTTPError",
    "HandlerShapeError",
    "ManifestError",
    "NotFound",
    "Request",
    "RequestContext",
    "Response",
    "RillError",
    "SuspenseTimeout",
    "create_include",
    "get_request",
    "include",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import rill`` fast while providing a clean top-level API.
    """
    if name == "App":
        from rill.app import App

        return App

    if name == "AppConfig":
        from rill.config import AppConfig

        return AppConfig

    if name == "Request":
        from rill.http.request import Request

        return Request

    if name == "Response":
        from rill.http.response import Response

        return Response

    if name in ("RequestContext", "get_request"):
        from rill import context as _ctx

        return getattr(_ctx, name)

    if name in ("Await", "ByteStream", "create_include", "include"):
        from rill import rendering as _rendering

        return getattr(_rendering, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "HandlerShapeError",
        "ManifestError",
        "NotFound",
        "RillError",
        "SuspenseTimeout",
    ):
        from rill import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

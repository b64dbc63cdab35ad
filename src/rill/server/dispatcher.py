"""Request dispatch — resolve, load the handler module, stream its output.

Flow per request::

    manifest = await gate.get()
    match    = resolve(manifest, request.path)      # or the not-found route
    handler  = module.handler                       # loaded once per file
    tree     = await invoke(handler, ctx)
    return StreamingResponse(RenderStream(tree), status, headers)
"""

from __future__ import annotations

import importlib.util
import logging
import mimetypes
import re
from pathlib import Path
from types import ModuleType
from typing import Any

from rill._internal.invoke import invoke
from rill._internal.types import Handler
from rill.config import AppConfig
from rill.context import RequestContext, ResponseInit
from rill.errors import HandlerShapeError
from rill.http.request import Request
from rill.http.response import Response, StreamingResponse
from rill.rendering.stream import RenderStream
from rill.routing.manifest import ManifestGate
from rill.routing.resolver import resolve
from rill.routing.route import Route, RouteKind

logger = logging.getLogger("rill.server")

NOT_FOUND_BODY = "<h1>Not found!</h1>"

_HTML = "text/html; charset=utf-8"


def default_content_type(route: Route) -> str:
    """Content type for a route whose handler didn't set one.

    Pages are HTML; endpoints are guessed from their pathname
    (``/feed.xml`` -> ``application/xml``).
    """
    if route.kind is RouteKind.PAGE:
        return _HTML
    guessed, _ = mimetypes.guess_type(route.pathname)
    return guessed or "application/octet-stream"


class Dispatcher:
    """Turns requests into streaming responses using the route manifest.

    Handler modules are imported on first match and cached by file, so
    module-level state in a page lives for the life of the process.
    """

    __slots__ = ("_config", "_gate", "_modules")

    def __init__(self, gate: ManifestGate, config: AppConfig) -> None:
        self._gate = gate
        self._config = config
        self._modules: dict[Path, ModuleType] = {}

    async def dispatch(self, request: Request) -> StreamingResponse | Response:
        """Resolve *request* and start rendering its handler's content tree.

        Raises:
            ManifestError: If the route manifest failed to build.
            HandlerShapeError: If the matched module has no callable
                ``handler``.
        """
        manifest = await self._gate.get()

        status = 200
        match = resolve(manifest, request.path)
        if match is None:
            status = 404
            match = resolve(manifest, self._config.not_found_path)
            if match is None:
                logger.debug("404 %s %s (no not-found route)", request.method, request.path)
                return Response(body=NOT_FOUND_BODY, status=404)

        route = match.route
        handler = self.load_handler(route)
        ctx = RequestContext(
            request=request,
            params=match.params,
            response=ResponseInit(status=status),
            route=route,
        )
        tree = await invoke(handler, ctx)

        # A handler may answer with a complete response (redirects, JSON)
        if isinstance(tree, (Response, StreamingResponse)):
            return tree

        return self._stream(tree, ctx, route)

    def load_handler(self, route: Route) -> Handler:
        """Return the ``handler`` exported by *route*'s module."""
        module = self._modules.get(route.location)
        if module is None:
            module = _load_module(route)
            self._modules[route.location] = module

        handler = getattr(module, "handler", None)
        if handler is None or not callable(handler):
            raise HandlerShapeError(str(route.location))
        return handler

    def _stream(
        self,
        tree: Any,
        ctx: RequestContext,
        route: Route,
    ) -> StreamingResponse:
        headers = ctx.response.headers
        content_type = headers.get("content-type") or default_content_type(route)
        extra = tuple((name, value) for name, value in headers if name.lower() != "content-type")

        stream = RenderStream(
            tree,
            delay=self._config.stream_delay,
            min_ms=self._config.suspense_min_ms,
            max_ms=self._config.suspense_max_ms,
        )
        return StreamingResponse(
            stream=stream,
            status=ctx.response.status,
            content_type=content_type,
            headers=extra,
        )


def _load_module(route: Route) -> ModuleType:
    """Import a pages module from its file path.

    Each file gets a unique module name derived from its pathname, so
    ``blog/index.py`` and ``index.py`` never collide.
    """
    name = "_rill_page_" + re.sub(r"\W", "_", route.pathname)
    spec = importlib.util.spec_from_file_location(name, route.location)
    if spec is None or spec.loader is None:
        raise HandlerShapeError(str(route.location))

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    logger.debug("Loaded handler module %s for %s", route.location, route.pattern_source)
    return module

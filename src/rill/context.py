"""Per-request context handed to route handlers.

Provides:
- ``RequestContext``: what a handler receives (request, captures, and a
  mutable response carrier for status and headers).
- ``request_var``: the current ``Request`` for this task, so components
  deep in a content tree can reach it without threading it through.

The ASGI handler sets ``request_var`` before dispatch and resets it once
the response has been fully sent, so lazily rendered components still
see it while the stream is open.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rill.http.headers import MutableHeaders
from rill.http.request import Request

if TYPE_CHECKING:
    from rill.routing.route import Route


@dataclass(slots=True)
class ResponseInit:
    """Mutable status and headers a handler sets before its body streams.

    Usage::

        def handler(ctx):
            ctx.response.status = 201
            ctx.response.headers.set("Cache-Control", "no-store")
            return "<p>created</p>"
    """

    status: int = 200
    headers: MutableHeaders = field(default_factory=MutableHeaders)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Everything a route handler receives.

    One per request, owned by the dispatcher. ``response`` is the only
    mutable part.
    """

    request: Request
    params: dict[str, str] = field(default_factory=dict)
    response: ResponseInit = field(default_factory=ResponseInit)
    route: Route | None = None


# -- Request context --

request_var: ContextVar[Request] = ContextVar("rill_request")
"""The current request. Set by the ASGI handler before dispatch."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()

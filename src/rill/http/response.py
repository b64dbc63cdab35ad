"""HTTP responses: buffered, and streamed from a content tree.

``Response.with_*()`` returns a new response each call; a handler may
return one directly for redirects and other non-HTML answers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rill.rendering.stream import RenderStream


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response with a fully-buffered body.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.

    A ``Response`` placed inside a content tree renders as its body text.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8", errors="replace")
        return self.body


@dataclass(frozen=True, slots=True)
class StreamingResponse:
    """A streaming HTTP response driven by a ``RenderStream``.

    Headers are sent immediately, then each encoded chunk is sent as an
    ASGI body message with ``more_body=True``; deferred payloads follow
    the main document and the stream closes once they have all flushed.

    Status and headers come from the handler's ``ResponseInit``.
    """

    stream: RenderStream
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()


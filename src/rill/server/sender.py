"""ASGI response sending — translates rill Response types to ASGI messages.

Handles both standard single-body responses and chunked streaming
responses driven by a ``RenderStream``.
"""

import html
import logging
import traceback

import anyio

from rill._internal.asgi import Receive, Send
from rill.http.response import Response, StreamingResponse
from rill.rendering.stream import RenderStream

logger = logging.getLogger("rill.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _raw_headers(
    content_type: str,
    headers: tuple[tuple[str, str], ...],
) -> list[tuple[bytes, bytes]]:
    raw: list[tuple[bytes, bytes]] = [(b"content-type", content_type.encode("latin-1"))]
    for name, value in headers:
        raw.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return raw


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a rill Response into ASGI send() calls."""
    raw_headers = _raw_headers(response.content_type, response.headers)

    body = response.body_bytes if _body_allowed(response.status) else b""

    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )


async def send_streaming_response(
    response: StreamingResponse,
    send: Send,
    receive: Receive | None = None,
    *,
    head: bool = False,
    debug: bool = False,
) -> None:
    """Send a streaming response via chunked transfer encoding.

    Sends headers immediately, then each encoded chunk of the render
    stream as an ASGI body message with ``more_body=True``. Closes with
    an empty body once the main document and every deferred payload
    have been sent. On mid-stream error, emits an HTML comment and
    closes.

    When *receive* is given, a client disconnect cancels the render
    stream so no further bytes are produced. For a HEAD request (*head*)
    only the headers go out; the tree is never rendered.
    """
    raw_headers = _raw_headers(response.content_type, response.headers)
    raw_headers.append((b"transfer-encoding", b"chunked"))

    # No content-length: chunked transfer encoding signals body boundaries
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )

    stream = response.stream
    if head:
        stream.cancel()
        await send({"type": "http.response.body", "body": b"", "more_body": False})
        return

    async def emit(data: bytes) -> None:
        await send(
            {
                "type": "http.response.body",
                "body": data,
                "more_body": True,
            }
        )

    try:
        async with anyio.create_task_group() as tg:
            if receive is not None:
                tg.start_soon(_watch_disconnect, receive, stream)
            await stream.pipe(emit)
            tg.cancel_scope.cancel()
    except Exception:
        # Mid-stream error: headers are gone, so report inside the body
        logger.exception("Render error while streaming response")
        if debug:
            escaped = html.escape(traceback.format_exc())
            error_chunk = (
                '<div class="rill-error" data-status="500"'
                ' style="white-space:pre-wrap;font-family:monospace;'
                'padding:1em;border:2px solid #c0392b">'
                f"{escaped}</div>"
            )
        else:
            error_chunk = "<!-- rill: render error -->"
        if not stream.cancelled:
            await emit(error_chunk.encode("utf-8"))

    # Close the stream
    await send(
        {
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        }
    )


async def _watch_disconnect(receive: Receive, stream: RenderStream) -> None:
    """Cancel *stream* once the client goes away."""
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            logger.debug("Client disconnected; cancelling render stream")
            stream.cancel()
            return

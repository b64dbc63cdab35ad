"""ASGI handler — translates ASGI scope/messages to rill types.

The only component that touches raw ASGI HTTP messages directly.
Converts scope dicts to typed Request objects, serves public assets,
dispatches through the route manifest, and sends the response back
through ASGI send().
"""

from contextvars import Token

from rill._internal.asgi import Receive, Scope, Send
from rill.context import request_var
from rill.errors import HTTPError
from rill.http.request import Request
from rill.http.response import Response, StreamingResponse
from rill.server.assets import PublicAssets
from rill.server.dispatcher import Dispatcher
from rill.server.errors import handle_http_error, handle_internal_error
from rill.server.sender import send_response, send_streaming_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    assets: PublicAssets | None = None,
    debug: bool = False,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    # Reset only after the body has been sent: streamed components may read it
    token: Token[Request] = request_var.set(request)
    try:
        response: Response | StreamingResponse | None = None
        try:
            if assets is not None:
                response = await assets.serve(request)
            if response is None:
                response = await dispatcher.dispatch(request)
        except HTTPError as exc:
            response = handle_http_error(exc, request, debug)
        except Exception as exc:
            response = handle_internal_error(exc, request, debug)

        if isinstance(response, StreamingResponse):
            await send_streaming_response(
                response, send, receive, head=request.method == "HEAD", debug=debug
            )
        else:
            await send_response(response, send, head=request.method == "HEAD")
    finally:
        request_var.reset(token)

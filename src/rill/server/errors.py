"""Error handling pipeline for rill requests.

Maps HTTPError exceptions and unexpected failures raised before a
response has started to plain responses.
"""

import html
import logging
import traceback

from rill.errors import HTTPError
from rill.http.request import Request
from rill.http.response import Response

logger = logging.getLogger("rill.server")


def handle_http_error(exc: HTTPError, request: Request, debug: bool) -> Response:
    """Map an HTTPError to a Response."""
    logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc.detail)

    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"

    resp = Response(body=html.escape(detail)).with_status(exc.status)
    for name, value in exc.headers:
        resp = resp.with_header(name, value)
    return resp


def handle_internal_error(exc: Exception, request: Request, debug: bool) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", request.method, request.path)

    if debug:
        trace = "".join(traceback.format_exception(exc))
        body = (
            "<h1>Internal Server Error</h1>"
            f'<pre class="rill-error">{html.escape(trace)}</pre>'
        )
        return Response(body=body, status=500)

    return Response(body="Internal Server Error", status=500)

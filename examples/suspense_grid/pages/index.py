"""Home page — sets a response header and splices in a partial."""

from rill import create_include

include = create_include(__file__)


def handler(ctx):
    ctx.response.headers.append("Cache-Control", "no-cache")
    return [
        "<!doctype html><html><body>",
        include("../partials/nav.html"),
        "<div>Hello index page!</div>",
        "</body></html>",
    ]

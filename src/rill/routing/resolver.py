"""Route resolution — maps a request path to exactly one route.

Resolution is a pure function of the manifest and the normalized path:

1. Discard routes whose depth is smaller than the request's depth.
2. Keep routes whose pattern matches.
3. Pick the lowest score; equal scores are ordered by pathname so the
   result never depends on discovery order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rill.routing.route import Route, RouteMatch

logger = logging.getLogger("rill.routing")


def normalize_pathname(path: str) -> str:
    """Strip a trailing ``index`` segment and trailing slashes.

    ``/blog/index`` and ``/blog/`` both normalize to ``/blog``; the root
    stays ``/``.
    """
    segments = [s for s in path.split("/") if s]
    if segments and segments[-1] == "index":
        segments.pop()
    return "/" + "/".join(segments)


def path_depth(pathname: str) -> int:
    """Number of segments minus one. ``/`` and ``/about`` are both depth 0."""
    return len(pathname.strip("/").split("/")) - 1


def resolve(routes: Iterable[Route], pathname: str) -> RouteMatch | None:
    """Return the most specific route matching *pathname*, or ``None``.

    *pathname* is normalized first, so callers may pass the raw request
    path.
    """
    pathname = normalize_pathname(pathname)
    depth = path_depth(pathname)

    candidates = [r for r in routes if r.depth >= depth and r.pattern.test(pathname)]
    if not candidates:
        logger.debug("No route matches %s", pathname)
        return None

    if len(candidates) == 1:
        best = candidates[0]
    else:
        best = min(candidates, key=lambda r: (r.score, r.pathname))

    params = best.pattern.exec(pathname)
    assert params is not None
    return RouteMatch(route=best, params=params)

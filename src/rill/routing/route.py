"""Route and RouteMatch frozen dataclasses."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rill.routing.pattern import RoutePattern


class RouteKind(Enum):
    """What a route's handler produces.

    ``PAGE`` handlers return HTML content trees; ``ENDPOINT`` handlers
    produce any other media type (``feed.xml.py``, ``user.json.py``).
    """

    PAGE = "page"
    ENDPOINT = "endpoint"


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route, discovered from one file under ``pages/``.

    Created once during manifest construction and never mutated.

    Attributes:
        pathname: Logical path of the file, extension stripped
            (``/blog/[slug]``).
        pattern_source: Matchable template (``/blog/:slug``).
        pattern: Compiled ``pattern_source``.
        kind: Page or endpoint.
        score: Specificity; lower wins. 0 for all-static routes,
            ``math.inf`` for catch-alls.
        depth: Deepest request path (segments minus one) the route can
            match; ``math.inf`` for catch-alls.
        location: The handler module on disk.
    """

    pathname: str
    pattern_source: str
    pattern: RoutePattern
    kind: RouteKind
    score: float
    depth: float
    location: Path


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route resolution."""

    route: Route
    params: dict[str, str]

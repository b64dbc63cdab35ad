"""Path patterns with named and catch-all captures.

Pattern sources use ``:name`` for one captured segment and a trailing
``:name*`` for the rest of the path::

    "/"                 -> matches "/"
    "/about"            -> matches "/about"
    "/blog/:slug"       -> matches "/blog/hello"      {"slug": "hello"}
    "/docs/:rest*"      -> matches "/docs"            {}
                           matches "/docs/a/b"        {"rest": "a/b"}

Trailing slashes are not significant.
"""

import math
import re
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PatternSegment:
    """A parsed segment of a pattern source.

    Static:    ``/about``   (capture=None)
    Capture:   ``/:slug``   (capture="slug")
    Catch-all: ``/:rest*``  (capture="rest", catch_all=True)
    """

    value: str
    capture: str | None = None
    catch_all: bool = False


def parse_pattern(source: str) -> list[PatternSegment]:
    """Parse a pattern source into segments.

    The root pattern ``/`` parses to a single empty static segment.

    Raises ``ValueError`` for invalid capture names, duplicate names, or a
    catch-all that is not the final segment.
    """
    parts = source.strip("/").split("/")
    segments: list[PatternSegment] = []
    seen: set[str] = set()
    for i, part in enumerate(parts):
        if not part.startswith(":"):
            if not part and i > 0:
                msg = f"Empty segment in pattern {source!r}"
                raise ValueError(msg)
            segments.append(PatternSegment(value=part))
            continue

        catch_all = part.endswith("*")
        name = part[1:-1] if catch_all else part[1:]
        if not name.isidentifier():
            msg = f"Invalid capture name {name!r} in pattern {source!r}"
            raise ValueError(msg)
        if name in seen:
            msg = f"Duplicate capture name {name!r} in pattern {source!r}"
            raise ValueError(msg)
        if catch_all and i != len(parts) - 1:
            msg = f"Catch-all {part!r} must be the last segment of {source!r}"
            raise ValueError(msg)
        seen.add(name)
        segments.append(PatternSegment(value=part, capture=name, catch_all=catch_all))
    return segments


def score_segments(segments: list[PatternSegment]) -> float:
    """Specificity score: 0 per static segment, 1-based position per
    capture, infinity for a catch-all. Lower is more specific."""
    score: float = 0
    for i, seg in enumerate(segments):
        if seg.catch_all:
            score += math.inf
        elif seg.capture is not None:
            score += i + 1
    return score


def depth_of(segments: list[PatternSegment]) -> float:
    """Segment count minus one, or infinity when the pattern ends in a catch-all."""
    if segments and segments[-1].catch_all:
        return math.inf
    return len(segments) - 1


class RoutePattern:
    """A compiled pattern supporting ``test()`` and ``exec()``.

    Usage::

        pattern = RoutePattern("/blog/:slug")
        pattern.test("/blog/hello")   # True
        pattern.exec("/blog/hello")   # {"slug": "hello"}
        pattern.exec("/about")        # None
    """

    __slots__ = ("_regex", "segments", "source")

    def __init__(self, source: str) -> None:
        self.source = source
        self.segments: tuple[PatternSegment, ...] = tuple(parse_pattern(source))
        self._regex = re.compile(_to_regex(self.segments))

    def test(self, pathname: str) -> bool:
        """True if *pathname* matches the pattern."""
        return self._regex.match(pathname) is not None

    def exec(self, pathname: str) -> dict[str, str] | None:
        """Return captured values for *pathname*, or ``None`` if it doesn't match.

        A catch-all that matched no segments is left out of the result.
        """
        match = self._regex.match(pathname)
        if match is None:
            return None
        return {name: value for name, value in match.groupdict().items() if value is not None}

    @property
    def score(self) -> float:
        return score_segments(list(self.segments))

    @property
    def depth(self) -> float:
        return depth_of(list(self.segments))

    def __repr__(self) -> str:
        return f"RoutePattern({self.source!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RoutePattern):
            return NotImplemented
        return self.source == other.source

    def __hash__(self) -> int:
        return hash(self.source)


def _to_regex(segments: tuple[PatternSegment, ...]) -> str:
    body: list[str] = []
    for seg in segments:
        if seg.catch_all:
            body.append(f"(?:/(?P<{seg.capture}>.+))?")
        elif seg.capture is not None:
            body.append(f"/(?P<{seg.capture}>[^/]+)")
        elif seg.value:
            body.append("/" + re.escape(seg.value))
    return "^" + "".join(body) + "/?$"

"""Route manifest — discovers the ``pages/`` tree and compiles it into routes.

Every ``.py`` module under the pages directory becomes one route. The
file's path relative to the pages root, minus its ``.py`` extension, is
the route's logical pathname; bracketed segments become captures::

    pages/index.py              ->  /               page
    pages/about.py              ->  /about          page
    pages/blog/[slug].py        ->  /blog/:slug     page
    pages/docs/[...rest].py     ->  /docs/:rest*    page
    pages/feed.xml.py           ->  /feed.xml       endpoint

Entries whose names start with ``_`` or ``.`` are skipped, so
``__init__.py`` and ``__pycache__`` never become routes.

The manifest is built once, asynchronously, before the first request is
matched. ``ManifestGate`` is the one-shot ready signal the resolver
awaits; a build failure is kept and re-raised to every waiter.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import anyio

from rill.errors import ManifestError
from rill.routing.pattern import RoutePattern
from rill.routing.route import Route, RouteKind

logger = logging.getLogger("rill.routing")

# [...name]: catch-all, must be the final segment
_CATCH_ALL_RE = re.compile(r"^\[\.\.\.([^\[\]]+)\]$")

# [name]: a single captured segment
_CAPTURE_RE = re.compile(r"^\[([^\[\]]+)\]$")


@dataclass(frozen=True, slots=True)
class Manifest:
    """Immutable, ordered set of compiled routes."""

    routes: tuple[Route, ...]
    root: Path

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes)

    def __len__(self) -> int:
        return len(self.routes)

    def by_priority(self) -> list[Route]:
        """Routes in the order the resolver prefers them (lowest score first)."""
        return sorted(self.routes, key=lambda r: (r.score, r.pathname))


def to_pattern_source(pathname: str) -> str:
    """Convert a bracketed logical pathname into a pattern source.

    ``/blog/[slug]`` becomes ``/blog/:slug``; a trailing ``[...rest]``
    becomes ``:rest*``; a trailing ``index`` segment collapses into its
    parent.

    Raises:
        ManifestError: If brackets do not span a whole segment.
    """
    segments = [s for s in pathname.split("/") if s]
    if segments and segments[-1] == "index":
        segments.pop()

    converted: list[str] = []
    for segment in segments:
        if m := _CATCH_ALL_RE.match(segment):
            converted.append(f":{m.group(1)}*")
        elif m := _CAPTURE_RE.match(segment):
            converted.append(f":{m.group(1)}")
        elif "[" in segment or "]" in segment:
            raise ManifestError(pathname, f"brackets must span the whole segment {segment!r}")
        else:
            converted.append(segment)
    return "/" + "/".join(converted)


def compile_route(location: Path, pages_root: Path) -> Route:
    """Compile one handler module into a ``Route``.

    Raises:
        ManifestError: If the file's path is not a valid route pattern.
    """
    relative = PurePosixPath(location.relative_to(pages_root).as_posix())
    pathname = "/" + str(relative.with_suffix(""))
    source = to_pattern_source(pathname)
    try:
        pattern = RoutePattern(source)
    except ValueError as exc:
        raise ManifestError(pathname, str(exc)) from exc

    last = relative.with_suffix("").name
    is_capture = _CAPTURE_RE.match(last) is not None
    kind = RouteKind.ENDPOINT if not is_capture and PurePosixPath(last).suffix else RouteKind.PAGE

    return Route(
        pathname=pathname,
        pattern_source=source,
        pattern=pattern,
        kind=kind,
        score=pattern.score,
        depth=pattern.depth,
        location=location,
    )


async def build_manifest(pages_dir: str | Path) -> Manifest:
    """Walk *pages_dir* and compile every handler module into a route.

    Raises:
        ManifestError: If the directory is missing or any file fails to
            compile. Construction is aborted; no partial manifest is
            returned.
    """
    root = await anyio.Path(pages_dir).resolve()
    if not await root.is_dir():
        raise ManifestError(str(root), "pages directory not found")

    routes: list[Route] = []
    await _walk(root, Path(root), routes)

    logger.info("Route manifest built: %d routes from %s", len(routes), root)
    for route in routes:
        logger.debug(
            "  %-8s %-30s score=%s depth=%s",
            route.kind.value,
            route.pattern_source,
            route.score,
            route.depth,
        )
    return Manifest(routes=tuple(routes), root=Path(root))


async def _walk(directory: anyio.Path, root: Path, routes: list[Route]) -> None:
    entries = sorted([entry async for entry in directory.iterdir()], key=lambda p: p.name)
    for entry in entries:
        if entry.name.startswith(("_", ".")):
            continue
        if await entry.is_dir():
            await _walk(entry, root, routes)
            continue
        if entry.suffix != ".py":
            logger.debug("Ignoring non-module file in pages: %s", entry)
            continue
        routes.append(compile_route(Path(entry), root))


class ManifestGate:
    """One-shot readiness gate around ``build_manifest``.

    The first caller of :meth:`get` builds the manifest; concurrent
    callers wait for that build and every later caller gets the cached
    result (or the cached build error).

    Usage::

        gate = ManifestGate(config.pages_path)
        manifest = await gate.get()
    """

    __slots__ = ("_error", "_lock", "_manifest", "pages_dir")

    def __init__(self, pages_dir: str | Path) -> None:
        self.pages_dir = Path(pages_dir)
        self._manifest: Manifest | None = None
        self._error: ManifestError | None = None
        # Created lazily: anyio primitives need a running event loop
        self._lock: anyio.Lock | None = None

    @property
    def ready(self) -> bool:
        """True once the manifest has been built successfully."""
        return self._manifest is not None

    async def get(self) -> Manifest:
        """Return the manifest, building it on first use."""
        if self._manifest is not None:
            return self._manifest
        if self._error is not None:
            raise self._error

        if self._lock is None:
            self._lock = anyio.Lock()
        async with self._lock:
            if self._manifest is None and self._error is None:
                try:
                    self._manifest = await build_manifest(self.pages_dir)
                except ManifestError as exc:
                    logger.error("Route manifest build failed: %s", exc)
                    self._error = exc
        if self._error is not None:
            raise self._error
        assert self._manifest is not None
        return self._manifest

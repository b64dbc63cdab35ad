"""Suspense-style boundaries — inline when fast, out of order when slow.

A boundary binds an awaitable to three branches: a ``placeholder``
shown while it loads, ``then`` for its value, and ``catch`` for its
error. Rendering a boundary races the awaitable against two timers:

- **min** (default 20ms): if the awaitable settles first, its rendered
  branch is returned inline — no placeholder flashes for fast data.
- **max** (default 5000ms): otherwise the placeholder is emitted right
  away and a ``DeferredRender`` goes to the stream encoder, which later
  emits a ``<script>`` that swaps the real content into place. If the
  awaitable misses ``max`` the boundary fails with ``SuspenseTimeout``
  and renders its ``catch`` branch, exactly like a rejection.

Usage::

    def handler(ctx):
        return [
            "<main>",
            Await(
                load_feed(),
                placeholder='<div class="skeleton"></div>',
                then=lambda feed: [f"<p>{item}</p>" for item in feed],
                catch=lambda exc: "<p>Feed unavailable</p>",
                timeout=1000,
            ),
            "</main>",
        ]

Wire format::

    <rill-fragment style="display:contents" id="r1a2b3c"><template></template>...placeholder...</rill-fragment>
    ...rest of the document...
    <script id="script-r1a2b3c">(() => { ... })()</script>
"""

from __future__ import annotations

import inspect
import json
import logging
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

import anyio

from rill.errors import SuspenseTimeout
from rill.rendering.nodes import DeferredRender
from rill.rendering.stream import DEFAULT_MAX_MS, DEFAULT_MIN_MS, current_scope, render_to_string

logger = logging.getLogger("rill.suspense")


# ---------------------------------------------------------------------------
# Payload formatters
# ---------------------------------------------------------------------------

def new_boundary_id() -> str:
    """Generate a boundary id, unique within any realistic response."""
    return f"r{secrets.token_hex(6)}"


def format_placeholder(boundary_id: str, fallback: Any) -> list[Any]:
    """Wrap placeholder content in the element a replacement script targets.

    Returns a content tree so *fallback* may itself be any tree.
    """
    return [
        f'<rill-fragment style="display:contents" id="{boundary_id}"><template></template>',
        fallback,
        "</rill-fragment>",
    ]


def format_replacement(boundary_id: str, html: str) -> str:
    """Build the ``<script>`` that swaps rendered *html* into its placeholder.

    The html travels as a JSON string literal; ``</`` is escaped so the
    content can never close the surrounding script element.
    """
    literal = json.dumps(html).replace("</", "<\\/").replace("<!--", "<\\!--")
    return (
        f'<script id="script-{boundary_id}">'
        "(() => {"
        f'const self = document.getElementById("script-{boundary_id}");'
        f'const fragment = document.getElementById("{boundary_id}");'
        "const template = fragment.firstElementChild;"
        f"template.innerHTML = {literal};"
        "fragment.replaceWith(template.content.cloneNode(true));"
        "self.remove();"
        "})()"
        "</script>"
    )


# ---------------------------------------------------------------------------
# Outcome of a bound computation
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class BoundaryOutcome:
    """A rendered branch of a boundary.

    Attributes:
        html: The branch rendered to text, used inline on the fast path.
        script: The replacement payload, used on the deferred path.
        failed: True when this is the ``catch`` branch.
    """

    html: str
    script: str
    failed: bool = False


async def render_branch(
    branch: Any,
    arg: Any,
    boundary_id: str,
    *,
    failed: bool = False,
) -> BoundaryOutcome:
    """Render a ``then``/``catch`` branch for *arg* into an outcome.

    A callable branch is called with *arg* (the value or the error); any
    other branch is treated as a content tree and rendered as-is. Nested
    boundaries inherit the enclosing render's default delays.
    """
    tree = branch(arg) if callable(branch) else branch
    scope = current_scope()
    html = await render_to_string(tree, min_ms=scope.min_ms, max_ms=scope.max_ms)
    return BoundaryOutcome(html=html, script=format_replacement(boundary_id, html), failed=failed)


class _Settlement:
    """A bound computation running in the render's task group.

    Shared by the ``min`` race and, on the deferred path, the ``max``
    race, so the computation runs exactly once.
    """

    __slots__ = ("_done", "_scope", "outcome")

    def __init__(self) -> None:
        self._done = anyio.Event()
        self._scope = anyio.CancelScope()
        self.outcome: BoundaryOutcome | None = None

    async def run(self, computation: Awaitable[BoundaryOutcome]) -> None:
        try:
            with self._scope:
                self.outcome = await computation
        finally:
            self._done.set()

    async def wait(self) -> None:
        await self._done.wait()

    def abandon(self) -> None:
        self._scope.cancel()


async def create_deferred(
    computation: Awaitable[BoundaryOutcome],
    *,
    on_timeout: Callable[[SuspenseTimeout], Awaitable[BoundaryOutcome]],
    min_ms: float = DEFAULT_MIN_MS,
    max_ms: float = DEFAULT_MAX_MS,
    boundary_id: str | None = None,
) -> str | DeferredRender:
    """Race *computation* against ``min_ms``, then against ``max_ms``.

    Returns the outcome's inline html if it settles within ``min_ms``.
    Otherwise returns a ``DeferredRender`` which, when called, waits up
    to ``max_ms`` more and returns the outcome's replacement script, or
    the script produced by *on_timeout* when the timer wins.

    Must run inside a ``RenderStream``: the computation is started in
    its task group so it outlives this call.
    """
    if min_ms > max_ms:
        msg = f"min_ms must not exceed max_ms (got {min_ms} > {max_ms})"
        raise ValueError(msg)

    settlement = _Settlement()
    current_scope().task_group.start_soon(settlement.run, computation)

    with anyio.move_on_after(min_ms / 1000):
        await settlement.wait()
    if settlement.outcome is not None:
        return settlement.outcome.html

    return DeferredRender(
        partial(_finish, settlement, on_timeout, max_ms),
        boundary_id or new_boundary_id(),
    )


async def _finish(
    settlement: _Settlement,
    on_timeout: Callable[[SuspenseTimeout], Awaitable[BoundaryOutcome]],
    max_ms: float,
) -> str:
    with anyio.move_on_after(max_ms / 1000):
        await settlement.wait()
    if settlement.outcome is not None:
        return settlement.outcome.script

    # The computation never finishes in the background after a timeout
    settlement.abandon()
    logger.warning("Suspense boundary timed out after %gms", max_ms)
    outcome = await on_timeout(SuspenseTimeout(max_ms))
    return outcome.script


# ---------------------------------------------------------------------------
# Boundary component
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Boundary:
    """A suspense boundary placed in a content tree.

    Calling it (which the flattener does lazily, when the boundary's
    position in the document is reached) starts the race. Build one with
    :func:`Await`. ``min_ms``/``max_ms`` left as ``None`` fall back to
    the defaults of the stream rendering the boundary.
    """

    bind: Any
    placeholder: Any = None
    then: Any = None
    catch: Any = None
    min_ms: float | None = None
    max_ms: float | None = None

    async def __call__(self) -> Any:
        scope = current_scope()
        max_ms = scope.max_ms if self.max_ms is None else self.max_ms
        min_ms = scope.min_ms if self.min_ms is None else self.min_ms
        boundary_id = new_boundary_id()
        result = await create_deferred(
            self._settle(boundary_id),
            on_timeout=partial(self._fail, boundary_id),
            min_ms=min(min_ms, max_ms),
            max_ms=max_ms,
            boundary_id=boundary_id,
        )
        if isinstance(result, DeferredRender):
            return [format_placeholder(boundary_id, self.placeholder), result]
        return result

    async def _settle(self, boundary_id: str) -> BoundaryOutcome:
        """Await the bound value and render the matching branch."""
        try:
            bind = self.bind() if callable(self.bind) else self.bind
            value = await bind if inspect.isawaitable(bind) else bind
            return await render_branch(self.then, value, boundary_id)
        except Exception as exc:
            logger.debug("Suspense boundary %s rejected: %r", boundary_id, exc)
            return await self._fail(boundary_id, exc)

    async def _fail(self, boundary_id: str, exc: Exception) -> BoundaryOutcome:
        """Render the ``catch`` branch; an empty outcome if that fails too."""
        try:
            return await render_branch(self.catch, exc, boundary_id, failed=True)
        except Exception:
            logger.exception("Suspense boundary %s: catch branch failed", boundary_id)
            return BoundaryOutcome(html="", script=format_replacement(boundary_id, ""), failed=True)


def Await(  # noqa: N802
    bind: Any,
    *,
    placeholder: Any = None,
    then: Any = None,
    catch: Any = None,
    timeout: float | None = None,
    min: float | None = None,  # noqa: A002
) -> Boundary:
    """Build a suspense boundary around *bind*.

    Args:
        bind: An awaitable (or a zero-argument callable returning one)
            producing the boundary's value.
        placeholder: Content tree shown until the value arrives.
        then: Callable receiving the value, or a content tree.
        catch: Callable receiving the error (``SuspenseTimeout`` when
            *timeout* elapses), or a content tree.
        timeout: ``max`` delay in milliseconds.
        min: ``min`` delay in milliseconds.

    Both delays default to the rendering app's ``suspense_min_ms`` /
    ``suspense_max_ms`` (20 / 5000).
    """
    if min is not None and timeout is not None and min >= timeout:
        msg = f"min must be smaller than timeout (got {min} >= {timeout})"
        raise ValueError(msg)
    return Boundary(
        bind=bind,
        placeholder=placeholder,
        then=then,
        catch=catch,
        min_ms=min,
        max_ms=timeout,
    )

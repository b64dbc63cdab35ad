"""Stream encoding — drive the flattener and emit encoded chunks.

``RenderStream`` owns one response body. Main-document chunks are
encoded and emitted strictly in document order. Deferred chunks are
started immediately in the stream's task group and the main walk keeps
going; each one emits its replacement payload as a single chunk when it
settles, in whatever order they settle. The stream is finished only
once the main walk is exhausted *and* every deferred payload has
flushed.

Pipeline::

    RenderStream(tree).pipe(emit)

    1. flatten(tree) -> str | DeferredRender, document order
    2. str            -> emit(chunk.encode("utf-8"))
    3. DeferredRender -> task group: await payload, flatten, emit once
    4. Main walk done -> task group exit waits for outstanding payloads

Cancellation sets a flag that is checked before every emission and
before pulling more work from the flattener, and cancels the scope the
main walk runs in, so a pending awaitable in the document does not hold
the stream open. Outstanding deferred payloads still run to completion,
but their output is dropped. A deferred payload that fails is logged and
dropped on its own; the rest of the stream carries on.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from contextlib import aclosing
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

import anyio
from anyio.abc import TaskGroup

from rill.rendering.flatten import flatten
from rill.rendering.nodes import DeferredRender

logger = logging.getLogger("rill.rendering")

Emit = Callable[[bytes], Awaitable[None]]

DEFAULT_MIN_MS = 20.0
DEFAULT_MAX_MS = 5000.0


@dataclass(frozen=True, slots=True)
class RenderScope:
    """What a suspense boundary needs from the stream rendering it.

    Attributes:
        task_group: Where boundaries start their bound computation, so it
            keeps running after the boundary has returned a placeholder.
        min_ms: Default ``min`` delay for boundaries in this render.
        max_ms: Default ``max`` delay for boundaries in this render.
    """

    task_group: TaskGroup
    min_ms: float = DEFAULT_MIN_MS
    max_ms: float = DEFAULT_MAX_MS


_scope_var: ContextVar[RenderScope] = ContextVar("rill_render_scope")


def current_scope() -> RenderScope:
    """Return the scope of the enclosing ``RenderStream``.

    Raises ``RuntimeError`` when called outside a render, e.g. when a
    handler awaits a boundary itself instead of returning it in the tree.
    """
    try:
        return _scope_var.get()
    except LookupError:
        msg = (
            "Suspense boundaries must be rendered by a RenderStream. "
            "Return the boundary inside the content tree instead of awaiting it."
        )
        raise RuntimeError(msg) from None


class RenderStream:
    """The encoded byte stream of one content tree.

    Usage::

        chunks: list[bytes] = []

        async def emit(data: bytes) -> None:
            chunks.append(data)

        await RenderStream(tree).pipe(emit)

    Args:
        tree: The content tree to render.
        delay: Seconds to sleep after each main-document chunk
            (throttling, and making streaming visible in tests).
        signal: Optional abort signal. Once set, the stream behaves as if
            ``cancel()`` had been called.
        min_ms: Default ``min`` delay for boundaries without their own.
        max_ms: Default ``max`` delay for boundaries without their own.
    """

    __slots__ = (
        "_aborted",
        "_delay",
        "_lock",
        "_signal",
        "_tree",
        "_walk_scope",
        "max_ms",
        "min_ms",
    )

    def __init__(
        self,
        tree: Any,
        *,
        delay: float | None = None,
        signal: anyio.Event | None = None,
        min_ms: float = DEFAULT_MIN_MS,
        max_ms: float = DEFAULT_MAX_MS,
    ) -> None:
        self._tree = tree
        self._delay = delay
        self._signal = signal
        self._aborted = False
        self._lock: anyio.Lock | None = None
        self._walk_scope: anyio.CancelScope | None = None
        self.min_ms = min_ms
        self.max_ms = max_ms

    @property
    def cancelled(self) -> bool:
        """True once the stream was cancelled or its signal was set."""
        if self._aborted:
            return True
        return self._signal is not None and self._signal.is_set()

    def cancel(self) -> None:
        """Stop emitting and abandon the main walk.

        In-flight deferred payloads are discarded.
        """
        self._aborted = True
        if self._walk_scope is not None:
            self._walk_scope.cancel()

    async def pipe(self, emit: Emit) -> None:
        """Render the tree, passing each encoded chunk to *emit*.

        Returns once the main document and every deferred payload have
        been emitted, or once the stream was cancelled and all
        outstanding deferred work has finished.
        """
        self._lock = anyio.Lock()
        self._walk_scope = anyio.CancelScope()
        if self.cancelled:
            self._walk_scope.cancel()
        async with anyio.create_task_group() as watchers:
            if self._signal is not None:
                watchers.start_soon(self._watch_signal, self._signal)
            async with anyio.create_task_group() as tg:
                token = _scope_var.set(RenderScope(tg, self.min_ms, self.max_ms))
                try:
                    with self._walk_scope:
                        await self._walk(emit, tg)
                finally:
                    _scope_var.reset(token)
            watchers.cancel_scope.cancel()
        if self.cancelled:
            logger.debug("Render stream cancelled; remaining output dropped")

    async def _walk(self, emit: Emit, tg: TaskGroup) -> None:
        """Emit the main document, handing deferred chunks to *tg*."""
        async with aclosing(flatten(self._tree)) as chunks:
            while not self.cancelled:
                try:
                    chunk = await anext(chunks)
                except StopAsyncIteration:
                    return
                if isinstance(chunk, DeferredRender):
                    tg.start_soon(self._flush_deferred, chunk, emit, tg)
                    continue
                await self._emit(chunk, emit)
                if self._delay is not None:
                    await anyio.sleep(self._delay)

    async def _watch_signal(self, signal: anyio.Event) -> None:
        await signal.wait()
        self.cancel()

    async def _emit(self, text: str, emit: Emit) -> None:
        if not text or self.cancelled:
            return
        assert self._lock is not None
        async with self._lock:
            if self.cancelled:
                return
            await emit(text.encode("utf-8"))

    async def _flush_deferred(self, deferred: DeferredRender, emit: Emit, tg: TaskGroup) -> None:
        """Resolve one deferred payload and emit it as a single chunk.

        A payload that fails to resolve or render is logged and dropped;
        sibling payloads and the main document are unaffected.
        """
        parts: list[str] = []
        try:
            payload = await deferred()
            if self.cancelled:
                return
            async with aclosing(flatten(payload)) as chunks:
                async for chunk in chunks:
                    if self.cancelled:
                        return
                    if isinstance(chunk, DeferredRender):
                        # A boundary nested inside a deferred payload
                        tg.start_soon(self._flush_deferred, chunk, emit, tg)
                        continue
                    parts.append(chunk)
        except Exception:
            logger.exception("Deferred payload %s failed; dropping it", deferred.boundary_id)
            return
        await self._emit("".join(parts), emit)


async def render_to_string(
    tree: Any,
    *,
    min_ms: float = DEFAULT_MIN_MS,
    max_ms: float = DEFAULT_MAX_MS,
) -> str:
    """Render a content tree fully and return the text.

    Deferred payloads are appended after the main document, in the order
    they settle.
    """
    parts: list[bytes] = []

    async def collect(data: bytes) -> None:
        parts.append(data)

    await RenderStream(tree, min_ms=min_ms, max_ms=max_ms).pipe(collect)
    return b"".join(parts).decode("utf-8")

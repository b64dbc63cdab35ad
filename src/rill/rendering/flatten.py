"""Tree flattening — content tree to an ordered chunk sequence.

``flatten()`` walks a content tree depth-first, left-to-right, and yields
text chunks in document order. Awaitables are resolved where they sit,
so an async sub-tree holds back everything after it. The one exception
is ``DeferredRender``: it is yielded as-is, never invoked, and the
stream encoder resolves it out of band.

The walk keeps an explicit stack of iterators instead of recursing
through nested async generators: every level costs one list entry, and
abandoning the walk closes every open generator in one place.
"""

import codecs
from collections.abc import AsyncIterable, AsyncIterator, Iterator
from typing import Any, TypeAlias

import anyio

from rill.rendering.nodes import ByteStream, DeferredRender, NodeKind, classify

Chunk: TypeAlias = str | DeferredRender

_Frame: TypeAlias = Iterator[Any] | AsyncIterator[Any]


async def flatten(node: Any) -> AsyncIterator[Chunk]:
    """Yield the chunks of *node* in document order.

    Precedence (see ``classify``): empty values vanish, text yields
    itself, bytes and byte streams are decoded, sequences and lazy
    iterables are entered in order, awaitables are awaited, thunks are
    called, deferred thunks are passed through untouched, and anything
    else renders with ``str()``.
    """
    stack: list[_Frame] = [iter((node,))]
    try:
        while stack:
            frame = stack[-1]
            try:
                if isinstance(frame, AsyncIterator):
                    child = await anext(frame)
                else:
                    child = next(frame)
            except (StopIteration, StopAsyncIteration):
                stack.pop()
                continue

            match classify(child):
                case NodeKind.EMPTY:
                    continue
                case NodeKind.TEXT:
                    yield child
                case NodeKind.BYTES:
                    yield bytes(child).decode("utf-8", errors="replace")
                case NodeKind.SEQUENCE:
                    stack.append(iter(child))
                case NodeKind.AWAITABLE:
                    stack.append(iter((await child,)))
                case NodeKind.BYTE_STREAM:
                    stack.append(_decode(child))
                case NodeKind.RESPONSE:
                    yield child.text
                case NodeKind.LAZY:
                    if isinstance(child, AsyncIterable):
                        stack.append(aiter(child))
                    else:
                        stack.append(iter(child))
                case NodeKind.THUNK:
                    stack.append(iter((child(),)))
                case NodeKind.DEFERRED:
                    yield child
                case NodeKind.VERBATIM:
                    yield str(child)
    finally:
        # Close generators left open by an abandoned walk, innermost first.
        # Shielded: a cancelled walk must still release every frame.
        with anyio.CancelScope(shield=True):
            for frame in reversed(stack):
                aclose = getattr(frame, "aclose", None)
                if aclose is not None:
                    await aclose()
                    continue
                close = getattr(frame, "close", None)
                if close is not None:
                    close()


async def _decode(stream: ByteStream) -> AsyncIterator[str]:
    """Decode a byte stream incrementally.

    Invalid sequences become U+FFFD rather than aborting the response.
    """
    decoder = codecs.getincrementaldecoder(stream.encoding)(errors="replace")
    if isinstance(stream.source, AsyncIterable):
        async for chunk in stream.source:
            text = decoder.decode(chunk)
            if text:
                yield text
    else:
        for chunk in stream.source:
            text = decoder.decode(chunk)
            if text:
                yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail

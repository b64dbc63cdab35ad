"""Content tree node kinds.

A content tree is whatever a page handler returns: strings, lists,
awaitables, byte streams, generators, thunks, and deferred markers nested
arbitrarily. ``classify()`` maps any value to exactly one ``NodeKind`` so
the flattener can dispatch with a single exhaustive ``match``.

Classification order matters — ``str`` and ``bytes`` are iterable, and
``DeferredRender`` is callable — so the checks below run from the most
specific kind to the most general.
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from rill.http.response import Response


class NodeKind(Enum):
    """One case per content tree variant."""

    EMPTY = auto()
    TEXT = auto()
    BYTES = auto()
    SEQUENCE = auto()
    AWAITABLE = auto()
    BYTE_STREAM = auto()
    RESPONSE = auto()
    LAZY = auto()
    THUNK = auto()
    DEFERRED = auto()
    VERBATIM = auto()


@dataclass(frozen=True, slots=True)
class ByteStream:
    """A stream of encoded bytes to splice into the output.

    Wraps a sync or async iterable of ``bytes``; chunks are decoded
    incrementally, so a multi-byte character split across two chunks
    still decodes correctly.

    Usage::

        async def read_chunks():
            async with await anyio.open_file("partial.html", "rb") as f:
                while chunk := await f.read(65536):
                    yield chunk

        return ["<main>", ByteStream(read_chunks()), "</main>"]
    """

    source: Iterable[bytes] | AsyncIterable[bytes]
    encoding: str = "utf-8"


class DeferredRender:
    """A thunk tagged as deferred.

    Produced by a suspense boundary whose data missed the ``min`` delay.
    The flattener never invokes it; it surfaces it to the stream encoder,
    which calls it to obtain the out-of-order replacement payload.
    """

    __slots__ = ("_func", "boundary_id")

    def __init__(self, func: Callable[[], Awaitable[Any]], boundary_id: str) -> None:
        self._func = func
        self.boundary_id = boundary_id

    def __call__(self) -> Awaitable[Any]:
        return self._func()

    def __repr__(self) -> str:
        return f"DeferredRender({self.boundary_id!r})"


def is_empty(node: Any) -> bool:
    """True for ``None``, ``False``, and ``""``. The number zero is content."""
    return node is None or node is False or (isinstance(node, str) and not node)


def classify(node: Any) -> NodeKind:
    """Return the ``NodeKind`` of a content tree node."""
    if is_empty(node):
        return NodeKind.EMPTY
    if isinstance(node, str):
        return NodeKind.TEXT
    if isinstance(node, (bytes, bytearray, memoryview)):
        return NodeKind.BYTES
    if isinstance(node, (list, tuple)):
        return NodeKind.SEQUENCE
    if isinstance(node, DeferredRender):
        return NodeKind.DEFERRED
    if isinstance(node, ByteStream):
        return NodeKind.BYTE_STREAM
    if isinstance(node, Response):
        return NodeKind.RESPONSE
    if inspect.isawaitable(node):
        return NodeKind.AWAITABLE
    if isinstance(node, Mapping):
        # Mappings iterate their keys, which is never what a page means
        return NodeKind.VERBATIM
    if isinstance(node, (AsyncIterable, Iterable)):
        return NodeKind.LAZY
    if callable(node):
        return NodeKind.THUNK
    return NodeKind.VERBATIM

"""Include component — splice a file or URL into the document as a byte stream.

Usage::

    from rill.rendering.include import create_include

    include = create_include(__file__)

    def handler(ctx):
        return ["<body>", include("partials/nav.html"), "</body>"]

Local paths are read with ``anyio.open_file``; ``http://`` and
``https://`` sources are fetched with httpx. Either way the body is
streamed chunk by chunk, never buffered whole.
"""

from collections.abc import AsyncIterator, Callable
from functools import partial
from pathlib import Path

import anyio
import httpx

from rill.rendering.nodes import ByteStream

_CHUNK_SIZE = 64 * 1024


def include(src: str | Path, *, base: str | Path | None = None) -> ByteStream:
    """Return a ``ByteStream`` over a file or URL.

    Args:
        src: A filesystem path or an ``http(s)://`` URL.
        base: File whose directory anchors a relative *src* (pass the
            including module's ``__file__``). Defaults to the working
            directory.
    """
    if isinstance(src, str) and src.startswith(("http://", "https://")):
        return ByteStream(_read_url(src))
    path = Path(src)
    if base is not None and not path.is_absolute():
        path = Path(base).resolve().parent / path
    return ByteStream(_read_file(path))


def create_include(module_file: str | Path) -> Callable[..., ByteStream]:
    """Bind :func:`include` to the directory of *module_file*."""
    return partial(include, base=module_file)


async def _read_file(path: Path) -> AsyncIterator[bytes]:
    async with await anyio.open_file(path, "rb") as f:
        while chunk := await f.read(_CHUNK_SIZE):
            yield chunk


async def _read_url(url: str) -> AsyncIterator[bytes]:
    async with httpx.AsyncClient() as client, client.stream("GET", url) as response:
        response.raise_for_status()
        async for chunk in response.aiter_bytes():
            yield chunk

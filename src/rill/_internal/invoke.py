"""Invoke helpers — call sync or async handlers uniformly.

Page handlers and boundary branches can be ``def`` or ``async def``. Any
code that calls a user-provided callable must handle both cases. This
module provides a single helper so the sync/async check lives in exactly
one place.

Usage::

    from rill._internal.invoke import invoke

    result = await invoke(handler, ctx)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync — returns immediately, no await needed
        def handler(ctx):
            return "<h1>Hello</h1>"

        # async — returns coroutine, awaited automatically
        async def handler(ctx):
            user = await load_user(ctx.params["id"])
            return f"<h1>{user.name}</h1>"
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

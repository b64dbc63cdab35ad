"""Typed ASGI definitions.

Raw ASGI callables as the server hands them to us. Users never see these;
they interact with Request and RequestContext instead.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

# Raw ASGI types (matching the ASGI 3.0 interface)
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]

"""Shared type aliases used across rill modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: ``handler(ctx)`` exported by a pages module
Handler: TypeAlias = Callable[..., Any]

# Content tree: anything the flattener knows how to render
ContentTree: TypeAlias = Any

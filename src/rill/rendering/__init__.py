"""Streaming render engine.

Flattens content trees into ordered HTML chunks and streams them, with
suspense boundaries that resolve out of order.

Usage::

    from rill.rendering import Await, render_to_string

    html = await render_to_string([
        "<h1>Hello</h1>",
        Await(load_stats(), placeholder="...", then=lambda s: f"<p>{s}</p>"),
    ])
"""

from rill.rendering.flatten import flatten
from rill.rendering.include import create_include, include
from rill.rendering.nodes import ByteStream, DeferredRender, NodeKind, classify
from rill.rendering.stream import RenderStream, render_to_string
from rill.rendering.suspense import Await, Boundary, BoundaryOutcome, create_deferred

__all__ = [
    "Await",
    "Boundary",
    "BoundaryOutcome",
    "ByteStream",
    "DeferredRender",
    "NodeKind",
    "RenderStream",
    "classify",
    "create_deferred",
    "create_include",
    "flatten",
    "include",
    "render_to_string",
]

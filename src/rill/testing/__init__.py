"""Test utilities for rill applications.

Provides a test client that captures streamed chunks and assertions
for suspense output::

    from rill.testing import TestClient, assert_deferred
"""

from rill.testing.assertions import (
    assert_deferred,
    assert_inline,
    placeholder_ids,
    replacement_ids,
)
from rill.testing.client import StreamResult, TestClient

__all__ = [
    "StreamResult",
    "TestClient",
    "assert_deferred",
    "assert_inline",
    "placeholder_ids",
    "replacement_ids",
]

"""Rill exception hierarchy.

Shared across the manifest builder, resolver, dispatcher, and render
engine so every module raises and catches the same types.
"""

from dataclasses import dataclass


class RillError(Exception):
    """Base for all rill-specific errors."""


class ConfigurationError(RillError):
    """Raised when app configuration is invalid.

    Typically raised at startup, before the first request is served.
    """


class ManifestError(ConfigurationError):
    """A file under ``pages/`` could not be compiled into a route.

    Fatal: the service cannot start with unknown routing.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot compile route for {path!r}: {reason}")


class HandlerShapeError(ConfigurationError):
    """A matched route module does not export a callable ``handler``."""

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"Matched {location} but it has no callable 'handler'.")


class SuspenseTimeout(RillError, TimeoutError):
    """A deferred boundary did not settle within its ``max`` delay.

    Rendered through the boundary's error branch, like any rejection.
    """

    def __init__(self, max_ms: float) -> None:
        self.max_ms = max_ms
        super().__init__(f"Deferred content did not resolve within {max_ms:g}ms")


@dataclass(frozen=True, slots=True)
class HTTPError(RillError):
    """An error that maps directly to an HTTP status code.

    The ASGI handler catches these and turns them into plain responses.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)

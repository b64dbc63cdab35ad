"""``rill routes`` — list discovered routes.

Resolves an import string to a rill App, builds its route manifest and
prints every route in the order the resolver prefers them.
"""

import argparse
import sys

import anyio

from rill.cli._resolve import resolve_app
from rill.errors import ManifestError


def run_routes(args: argparse.Namespace) -> None:
    """Print a table of KIND, PATTERN, SCORE, DEPTH and FILE."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        manifest = anyio.run(app.manifest)
    except ManifestError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = manifest.by_priority()
    if not routes:
        print("No routes found.")
        return

    rows: list[tuple[str, str, str, str, str]] = []
    for route in routes:
        rows.append(
            (
                route.kind.value,
                route.pattern_source,
                _number(route.score),
                _number(route.depth),
                str(route.location.relative_to(manifest.root)),
            )
        )

    headers = ("KIND", "PATTERN", "SCORE", "DEPTH", "FILE")
    widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(headers)]

    fmt = "  ".join(f"{{:<{w}}}" for w in widths[:-1]) + "  {}"
    print(fmt.format(*headers))
    print("-" * min(sum(widths) + 2 * (len(widths) - 1), 80))
    for row in rows:
        print(fmt.format(*row))


def _number(value: float) -> str:
    return "inf" if value == float("inf") else str(int(value))

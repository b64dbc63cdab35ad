"""Rill CLI — dev server and route listing.

Entry point registered as ``rill`` in ``pyproject.toml``::

    [project.scripts]
    rill = "rill.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``rill`` command."""
    parser = argparse.ArgumentParser(
        prog="rill",
        description="Rill — file-routed HTML streaming for ASGI.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- rill run ---------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start dev or production server")
    run_parser.add_argument(
        "app",
        help="Import string (e.g. site:app)",
    )
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--production",
        action="store_true",
        help="Run in production mode (multi-worker, no reload)",
    )
    run_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker count (0=auto-detect, production only)",
    )

    # -- rill routes ------------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List discovered routes")
    routes_parser.add_argument(
        "app",
        help="Import string (e.g. site:app)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from rill.cli._run import run_server

        run_server(args)
    elif args.command == "routes":
        from rill.cli._routes import run_routes

        run_routes(args)

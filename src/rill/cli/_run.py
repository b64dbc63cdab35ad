"""``rill run`` — development or production server command.

Resolves an import string to a rill App and starts either the
development server (single worker, auto-reload) or the production
server (multi-worker).
"""

import argparse
import logging
import sys

from rill.cli._resolve import resolve_app


def run_server(args: argparse.Namespace) -> None:
    """Start the rill server (dev or production mode).

    Resolves ``args.app`` to a rill App, configures logging at the app's
    ``log_level``, then delegates to either:
    - ``run_dev_server()`` for development (debug=True)
    - ``run_production_server()`` for production (--production flag or debug=False)
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    logging.basicConfig(
        level=app.config.log_level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    host = args.host or app.config.host
    port = args.port or app.config.port

    production_mode = args.production or not app.config.debug

    if production_mode:
        from rill.server.production import run_production_server

        run_production_server(
            app,
            host=host,
            port=port,
            workers=args.workers if args.workers is not None else app.config.workers,
            log_level=app.config.log_level,
        )
    else:
        from rill.server.dev import run_dev_server

        run_dev_server(
            app,
            host,
            port,
            reload=app.config.debug,
            reload_include=app.config.reload_include,
            reload_dirs=app.config.reload_dirs,
            app_path=args.app,
        )

"""Production server.

Starts a multi-worker pounce server. Every worker builds its own route
manifest during lifespan startup; a manifest error fails startup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rill.app import App


def run_production_server(
    app: App,
    host: str = "0.0.0.0",
    port: int = 8000,
    workers: int = 0,  # 0 = auto-detect from CPU count
    *,
    log_level: str = "info",
    keep_alive_timeout: float = 5.0,
    request_timeout: float | None = None,
) -> None:
    """Run a rill app in production mode.

    Args:
        app: Rill App instance.
        host: Bind address (default: 0.0.0.0 for all interfaces).
        port: Bind port (default: 8000).
        workers: Worker count (0 = auto-detect from CPU count).
        log_level: Log level (debug, info, warning, error, critical).
        keep_alive_timeout: Keep-alive connection timeout (seconds).
        request_timeout: Individual request timeout (seconds). Left unset
            by default: a streamed page stays open until its slowest
            suspense boundary settles, so pick a value above
            ``AppConfig.suspense_max_ms``.

    Example:
        >>> from site import app
        >>> from rill.server.production import run_production_server
        >>> run_production_server(app, workers=4)
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    options: dict[str, object] = {
        "host": host,
        "port": port,
        "workers": workers,
        "log_level": log_level,
        "keep_alive_timeout": keep_alive_timeout,
        "health_check_path": None,
    }
    if request_timeout is not None:
        options["request_timeout"] = request_timeout

    config = ServerConfig(**options)
    server = Server(config, app)
    server.run()

"""Rill application class.

An ``App`` is configured once and serves one pages directory. Routes
come from the filesystem, so there is nothing to register: the manifest
is built during ASGI lifespan startup (or on the first request when the
server doesn't run lifespan) and never changes afterwards.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from rill._internal.asgi import Receive, Scope, Send
from rill.config import AppConfig
from rill.routing.manifest import Manifest, ManifestGate
from rill.server.assets import PublicAssets
from rill.server.dispatcher import Dispatcher
from rill.server.handler import handle_request

logger = logging.getLogger("rill.app")


class App:
    """The rill application.

    Usage::

        from rill import App, AppConfig

        app = App(AppConfig(root=Path(__file__).parent))

    Run it with ``rill run site:app`` or hand ``app`` to any ASGI server.
    """

    __slots__ = (
        "_assets",
        "_dispatcher",
        "_gate",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []

        self._gate = ManifestGate(self.config.pages_path)
        self._dispatcher = Dispatcher(self._gate, self.config)

        public = self.config.public_path
        self._assets: PublicAssets | None = (
            PublicAssets(public, cache_control=self.config.asset_cache_control)
            if public is not None
            else None
        )

    # -- Routes --

    async def manifest(self) -> Manifest:
        """Return the route manifest, building it on first use.

        Raises:
            ManifestError: If a file under ``pages/`` cannot be compiled.
        """
        return await self._gate.get()

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the route manifest has been built.

        Usage::

            @app.on_startup
            async def setup():
                await cache.connect()
        """
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def run(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        app_path: str | None = None,
    ) -> None:
        """Start the server (dev or production based on config.debug).

        - **Development mode** (debug=True): single worker with auto-reload
        - **Production mode** (debug=False): multi-worker

        Args:
            host: Override bind host.
            port: Override bind port.
            app_path: ``"module:attribute"`` import string, forwarded to the
                dev server so reloads re-import the app.
        """
        _host = host or self.config.host
        _port = port or self.config.port

        if self.config.debug:
            from rill.server.dev import run_dev_server

            run_dev_server(
                self,
                _host,
                _port,
                reload=True,
                reload_include=self.config.reload_include,
                reload_dirs=self.config.reload_dirs,
                app_path=app_path,
            )
        else:
            from rill.server.production import run_production_server

            run_production_server(
                self,
                host=_host,
                port=_port,
                workers=self.config.workers,
                log_level=self.config.log_level,
            )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self._dispatcher,
            assets=self._assets,
            debug=self.config.debug,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Builds the route manifest at startup (before the first HTTP
        request), then runs registered startup/shutdown hooks and signals
        completion back to the server.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    manifest = await self._gate.get()
                    logger.info("Serving %d routes from %s", len(manifest), manifest.root)
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.error("Startup failed: %s", exc)
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

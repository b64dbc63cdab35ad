"""Development server with hot reload.

Starts a single-worker pounce server around the live rill App. The
app's ``pages/`` and ``public/`` directories are always watched, along
with the usual partial and asset extensions, so adding a page or editing
an included partial triggers a reload without any extra configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rill.app import App

# Extensions a rill site typically includes or serves next to its pages
DEFAULT_RELOAD_INCLUDE = (".html", ".css", ".js", ".svg")


def watch_dirs(app: App, extra: tuple[str, ...] = ()) -> tuple[str, ...]:
    """Directories to watch for *app*: pages, public assets, then *extra*.

    Duplicates are dropped and missing directories skipped, order kept.
    """
    candidates = [app.config.pages_path, app.config.public_path, *extra]
    dirs: list[str] = []
    for candidate in candidates:
        if candidate is None:
            continue
        path = str(candidate)
        if path not in dirs and Path(path).is_dir():
            dirs.append(path)
    return tuple(dirs)


def run_dev_server(
    app: App,
    host: str,
    port: int,
    *,
    reload: bool = True,
    reload_include: tuple[str, ...] = (),
    reload_dirs: tuple[str, ...] = (),
    app_path: str | None = None,
) -> None:
    """Start a pounce dev server for *app*.

    Args:
        app: The rill App to serve.
        host: Bind host address.
        port: Bind port number.
        reload: Enable auto-reload on file changes (default True).
        reload_include: Extensions watched on top of ``.py`` and
            ``DEFAULT_RELOAD_INCLUDE``.
        reload_dirs: Directories watched on top of the app's pages and
            public directories.
        app_path: Optional ``"module:attribute"`` import string. When
            given, pounce reimports the app on each reload so new pages
            get a fresh route manifest.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    include = tuple(dict.fromkeys((*DEFAULT_RELOAD_INCLUDE, *reload_include)))
    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        reload_include=include,
        reload_dirs=watch_dirs(app, reload_dirs),
    )
    Server(config, app, app_path=app_path).run()

"""Shared fixtures: temporary sites with a ``pages/`` tree."""

from collections.abc import Callable
from pathlib import Path
from textwrap import dedent

import pytest

from rill.app import App
from rill.config import AppConfig

SiteFactory = Callable[..., App]


@pytest.fixture
def make_site(tmp_path: Path) -> SiteFactory:
    """Build an App over a temporary site.

    Usage::

        app = make_site({"index.py": "def handler(ctx): return 'hi'"}, debug=True)
    """

    def factory(pages: dict[str, str], *, public: dict[str, str | bytes] | None = None, **config) -> App:
        pages_dir = tmp_path / "pages"
        pages_dir.mkdir(exist_ok=True)
        for name, source in pages.items():
            path = pages_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(source))
        for name, content in (public or {}).items():
            path = tmp_path / "public" / name
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content)
        return App(AppConfig(root=tmp_path, **config))

    return factory

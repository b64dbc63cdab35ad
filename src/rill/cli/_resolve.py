"""App import resolution — resolves ``"module:attribute"`` strings to App instances.

Shared utility used by ``rill run`` and ``rill routes``.
"""

import importlib
import sys
from pathlib import Path

from rill.app import App


def resolve_app(import_string: str) -> App:
    """Resolve an import string to a rill App instance.

    Accepts ``"module:attribute"`` format.  When the attribute portion
    is omitted, defaults to ``"app"`` (e.g. ``"site"`` resolves to
    ``site.app``). The working directory is importable, so a ``site.py``
    next to ``pages/`` works without installing anything.

    Supports factory functions: if the resolved object is callable and
    not an App instance, it will be called.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a rill ``App`` or callable.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "app"

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, App):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, App):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a rill.App instance"
        raise TypeError(msg)

    return obj

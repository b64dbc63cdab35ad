"""Public asset serving.

Files under the app's ``public/`` directory are served as-is, before
routing, for GET and HEAD requests. A path that does not name a file
falls through to the route resolver.

Security: resolves symlinks and verifies the final path is within the
public directory to prevent path traversal.
"""

import logging
import mimetypes
from pathlib import Path

import anyio

from rill.http.request import Request
from rill.http.response import Response

logger = logging.getLogger("rill.server")


class PublicAssets:
    """Serves files from a directory at the site root.

    Usage::

        assets = PublicAssets("./public")
        response = await assets.serve(request)   # None -> not an asset
    """

    __slots__ = ("_cache_control", "_directory")

    def __init__(
        self,
        directory: str | Path,
        *,
        cache_control: str = "public, max-age=3600",
    ) -> None:
        self._directory = Path(directory).resolve()
        self._cache_control = cache_control

    @property
    def directory(self) -> Path:
        return self._directory

    def lookup(self, path: str) -> Path | None:
        """Map a request path to a file inside the directory.

        Returns ``None`` when no regular file matches. Raises
        ``PermissionError`` when the path escapes the directory.
        """
        relative = path.lstrip("/")
        if not relative:
            return None
        file_path = (self._directory / relative).resolve()
        if not file_path.is_relative_to(self._directory):
            raise PermissionError(path)
        if not file_path.is_file():
            return None
        return file_path

    async def serve(self, request: Request) -> Response | None:
        """Serve the file named by the request path, or return ``None``."""
        if request.method not in ("GET", "HEAD"):
            return None
        if not self._directory.is_dir():
            return None

        try:
            file_path = self.lookup(request.path)
        except PermissionError:
            logger.warning("Rejected asset path outside public dir: %s", request.path)
            return Response(body="Forbidden", status=403, content_type="text/plain; charset=utf-8")
        if file_path is None:
            return None

        content_type, _ = mimetypes.guess_type(str(file_path))
        if content_type is None:
            content_type = "application/octet-stream"

        body = await anyio.Path(file_path).read_bytes()
        return Response(body=body, content_type=content_type).with_header(
            "Cache-Control", self._cache_control
        )

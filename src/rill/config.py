"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass, field
from pathlib import Path

from rill.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(root="site", debug=True, port=3000)
    """

    # Project layout
    root: str | Path = field(default_factory=Path.cwd)
    pages_dir: str = "pages"
    public_dir: str | None = "public"  # None disables asset serving
    not_found_path: str = "/404"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    workers: int = 0  # 0 = auto-detect from CPU count (production only)

    # Reload (development mode — requires debug=True)
    reload_include: tuple[str, ...] = ()  # Extra extensions to watch (e.g. ".html", ".css")
    reload_dirs: tuple[str, ...] = ()  # Extra directories to watch alongside cwd

    # Suspense boundaries
    suspense_min_ms: float = 20.0  # Below this, resolved content renders inline
    suspense_max_ms: float = 5000.0  # Above this, the boundary fails with a timeout

    # Streaming
    stream_delay: float | None = None  # Seconds to pause between main-stream chunks

    # Assets
    asset_cache_control: str = "public, max-age=3600"

    # Logging
    log_level: str = "info"

    def __post_init__(self) -> None:
        if self.suspense_min_ms < 0:
            msg = f"suspense_min_ms must be >= 0, got {self.suspense_min_ms}"
            raise ConfigurationError(msg)
        if self.suspense_min_ms >= self.suspense_max_ms:
            msg = (
                "suspense_min_ms must be smaller than suspense_max_ms "
                f"(got {self.suspense_min_ms} >= {self.suspense_max_ms})"
            )
            raise ConfigurationError(msg)
        if not self.not_found_path.startswith("/"):
            msg = f"not_found_path must start with '/', got {self.not_found_path!r}"
            raise ConfigurationError(msg)

    @property
    def pages_path(self) -> Path:
        """Absolute path of the pages directory."""
        return Path(self.root).resolve() / self.pages_dir

    @property
    def public_path(self) -> Path | None:
        """Absolute path of the public asset directory, if enabled."""
        if self.public_dir is None:
            return None
        return Path(self.root).resolve() / self.public_dir

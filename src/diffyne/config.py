"""Diffyne configuration.

DiffyneConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from diffyne._errors import ConfigError

# HMAC-SHA256 keys shorter than this are rejected outside debug mode
MIN_SECRET_LENGTH = 32

_DEBUG_SECRET = "dev-only-not-for-production-dev-only-key"


@dataclass(frozen=True, slots=True)
class DiffyneConfig:
    """Configuration for a Diffyne application.

    Attributes:
        root: Application root directory (contains templates/, diffyne.yaml).
              Always resolved to an absolute path on construction.
        secret_key: Key for signing component state.  Only this key verifies;
            rotating it invalidates envelopes that are still in flight.
        host: Bind address for ``serve``.
        port: Bind port for ``serve``.
        workers: Number of Pounce workers (0 = auto-detect).
        templates_dir: Directory containing Kida component templates.
        components: Module (dotted name or .py file) defining the components.
        rate_limit_updates: Property-set requests allowed per client per window.
        rate_limit_calls: Method-call requests allowed per client per window.
        rate_limit_window: Length of the rate-limit window in seconds.
        request_timeout: Seconds the transport waits for one request.
        trusted_proxies: Reverse proxies in front of the server that append
            to ``X-Forwarded-For`` (0 ignores the header).
        render_cache_size: Verified renderings kept for reuse (0 disables).
        max_events: Capacity of the observability event log.
        verify_patches: Re-apply computed patches and compare with the new
            rendering before responding (debugging aid).
        debug: Development mode; allows the built-in placeholder secret.

    """

    root: Path = field(default_factory=Path.cwd)
    secret_key: str = ""
    host: str = "127.0.0.1"
    port: int = 8000
    workers: int = 0
    templates_dir: str = "templates"
    components: str = ""
    rate_limit_updates: int = 120
    rate_limit_calls: int = 60
    rate_limit_window: float = 60.0
    request_timeout: float = 10.0
    trusted_proxies: int = 0
    render_cache_size: int = 256
    max_events: int = 10_000
    verify_patches: bool = False
    debug: bool = False

    def __post_init__(self) -> None:
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if not self.secret_key and self.debug:
            object.__setattr__(self, "secret_key", _DEBUG_SECRET)
        if not self.debug and len(self.secret_key) < MIN_SECRET_LENGTH:
            msg = (
                f"secret_key must be at least {MIN_SECRET_LENGTH} characters "
                "(set DIFFYNE_SECRET_KEY or run `diffyne keygen`)"
            )
            raise ConfigError(msg)
        if self.rate_limit_window <= 0:
            msg = "rate_limit_window must be positive"
            raise ConfigError(msg)
        if self.trusted_proxies < 0:
            msg = "trusted_proxies must not be negative"
            raise ConfigError(msg)

    @property
    def templates_path(self) -> Path:
        """Absolute path to the component templates directory."""
        return self.root / self.templates_dir

    @property
    def rate_limits(self) -> dict[str, int]:
        """Per-group request limits for the rate limiter."""
        return {"update": self.rate_limit_updates, "call": self.rate_limit_calls}

"""Security layer — capability checks and per-client rate limiting."""

from diffyne.security.gate import authorize_invoke, authorize_write
from diffyne.security.ratelimit import RateLimiter

__all__ = [
    "RateLimiter",
    "authorize_invoke",
    "authorize_write",
]
